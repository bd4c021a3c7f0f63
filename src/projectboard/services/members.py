# src/projectboard/services/members.py

"""
Member management for one project.

The owner entry (userId == projectOwnerId, or role "Project Owner") can never be
removed or edited here: such requests raise MemberPolicyError before any
network call. A project always keeps at least one member.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from ..core.errors import MemberPolicyError, ProjectBoardError, TransportError, ValidationError
from ..core.state import CHANNEL_MEMBERS, AppState
from ..records.models import MemberProfile, Project, ProjectMember
from ..records.normalize import normalize_user, parse_many
from .projects import update_project
from .validation import validate_member_form

logger = logging.getLogger(__name__)


def _find_member(project: Project, user_id: str) -> ProjectMember | None:
    uid = str(user_id)
    for m in project.members:
        if m.user_id == uid:
            return m
    return None


def _members_payload(members: Sequence[ProjectMember]) -> list[dict[str, str]]:
    return [m.to_payload() for m in members]


def check_member_removal(project: Project, user_id: str) -> list[ProjectMember]:
    """Return the member list without user_id, or raise MemberPolicyError."""
    member = _find_member(project, user_id)
    if member is None:
        raise MemberPolicyError("Người dùng này không phải thành viên của dự án")
    if project.is_owner_entry(member):
        raise MemberPolicyError("Không thể xóa Project Owner")
    if len(project.members) <= 1:
        raise MemberPolicyError("Dự án phải có ít nhất 1 thành viên")
    return [m for m in project.members if m.user_id != member.user_id]


def check_role_change(project: Project, user_id: str, new_role: str) -> list[ProjectMember]:
    member = _find_member(project, user_id)
    if member is None:
        raise MemberPolicyError("Người dùng này không phải thành viên của dự án")
    if project.is_owner_entry(member):
        raise MemberPolicyError("Không thể thay đổi vai trò của Project Owner")
    role = new_role.strip()
    if not role:
        raise ValidationError({"role": "Vai trò không được để trống"})
    return [ProjectMember(m.user_id, role) if m.user_id == member.user_id else m for m in project.members]


async def _save(state: AppState, project: Project, members: list[ProjectMember]) -> Project:
    updated = await update_project(state, project.id, {"members": _members_payload(members)})
    state.session.set_selected_project(updated)
    return updated


async def add_member(state: AppState, project: Project, *, email: str, role: str) -> Project:
    errors = validate_member_form(email, role)
    if errors:
        raise ValidationError(errors)

    try:
        raw_users = await state.remote.list_users(email=email.strip())
    except TransportError as e:
        raise TransportError("Không thể kiểm tra email", status_code=e.status_code) from e

    users = parse_many(raw_users, normalize_user)
    if not users:
        raise ValidationError({"email": "Email này chưa được đăng ký trong hệ thống"})

    found = users[0]
    if project.has_member(found.id):
        raise ValidationError({"email": "Người dùng này đã là thành viên của dự án"})

    members = [*project.members, ProjectMember(user_id=found.id, role=role.strip())]
    updated = await _save(state, project, members)
    logger.info("Member added project=%s user=%s", project.id, found.id)
    return updated


async def remove_member(state: AppState, project: Project, user_id: str) -> Project:
    members = check_member_removal(project, user_id)
    updated = await _save(state, project, members)
    logger.info("Member removed project=%s user=%s", project.id, user_id)
    return updated


async def change_member_role(state: AppState, project: Project, user_id: str, role: str) -> Project:
    members = check_role_change(project, user_id, role)
    updated = await _save(state, project, members)
    logger.info("Member role changed project=%s user=%s", project.id, user_id)
    return updated


async def save_members(state: AppState, project: Project, members: Sequence[ProjectMember]) -> Project:
    """
    Write an edited member list in one go (the "member list" dialog's save).

    The owner entry must be present and unchanged.
    """
    if not members:
        raise MemberPolicyError("Dự án phải có ít nhất 1 thành viên")

    owner_before = [m for m in project.members if project.is_owner_entry(m)]
    for owner in owner_before:
        after = _find_member(project.with_members(members), owner.user_id)
        if after is None:
            raise MemberPolicyError("Không thể xóa Project Owner")
        if after.role != owner.role:
            raise MemberPolicyError("Không thể thay đổi vai trò của Project Owner")

    return await _save(state, project, list(members))


async def _profile(state: AppState, member: ProjectMember) -> MemberProfile:
    try:
        user = normalize_user(await state.remote.get_user(member.user_id))
    except ProjectBoardError:
        logger.debug("User lookup failed user=%s", member.user_id, exc_info=True)
        user = None
    if user is None:
        return MemberProfile(user_id=member.user_id, role=member.role, name=f"User {member.user_id}")
    return MemberProfile(
        user_id=member.user_id,
        role=member.role,
        name=user.name or f"User {member.user_id}",
        email=user.email,
    )


async def list_members(state: AppState, project: Project) -> list[MemberProfile] | None:
    """
    Enrich the project's members with name/email (lookups run concurrently).

    Returns None if the selection changed while the lookups were in flight.
    """
    ticket = state.requests.begin(CHANNEL_MEMBERS)
    try:
        profiles = list(await asyncio.gather(*(_profile(state, m) for m in project.members)))
    finally:
        state.requests.finish(ticket)

    if not state.requests.is_current(ticket):
        logger.info("Discarding stale member profiles for project=%s", project.id)
        return None

    selected = state.session.selected_project
    if selected is not None and selected.id == project.id:
        state.task_view.members = profiles
    return profiles
