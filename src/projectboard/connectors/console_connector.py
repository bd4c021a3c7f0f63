# src/projectboard/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except OSError:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _prompt(state: AppState) -> str:
    user = state.session.user
    who = user.name if user else "guest"
    project = state.session.selected_project
    return f"{who}@{project.name} > " if project else f"{who} > "


def _deliver(fut: asyncio.Future, line: str | None, exc: BaseException | None) -> None:
    # The reader may finish after the loop stopped waiting for it.
    if fut.done():
        return
    if exc is not None:
        fut.set_exception(exc)
    else:
        fut.set_result(line)


def _read_line(prompt: str) -> asyncio.Future:
    """input(prompt) on a daemon thread, resolved on the running loop."""
    loop = asyncio.get_running_loop()
    fut = loop.create_future()

    def reader() -> None:
        line: str | None = None
        error: BaseException | None = None
        try:
            line = input(prompt)
        except Exception as e:
            error = e
        with contextlib.suppress(RuntimeError):  # loop already closed
            loop.call_soon_threadsafe(_deliver, fut, line, error)

    threading.Thread(target=reader, name="console-input", daemon=True).start()
    return fut


async def run_console_loop(state: AppState) -> None:
    """
    Read commands from stdin until /exit, EOF or Ctrl+C.

    input() runs in a daemon thread so the event loop (and the HTTP client bound
    to it) stays usable between commands. Ctrl+C cancels this coroutine (see
    asyncio.run); the blocked reader thread does not hold up interpreter exit.
    """
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "projectboard"))
    logger.info("Console connector started.")
    _print_ts(f"[{app_name}] Use /help for commands. Use /exit to quit.\n")

    user = state.session.user
    if user is not None:
        _print_ts(f"Welcome back, {user.name}. Use /projects to list your projects.")
    else:
        _print_ts("Not logged in. Use /login <email> <password> or /register.")

    def emit(text: str) -> None:
        # Immediate feedback before a slow fetch.
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        prompt = _prompt(state)
        try:
            user_input = (await _read_line(prompt)).strip()
            _rewrite_prev_line(f"[{_ts_local()}] {prompt}{user_input}")
        except (EOFError, OSError):
            logger.info("Console input closed, exiting.")
            break
        except asyncio.CancelledError:
            logger.info("Console cancelled (Ctrl+C), exiting.")
            print()
            raise

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help to list them."
        print(f"[{_ts_local()}] {reply}\n")

    logger.info("Console connector finished.")
