# src/projectboard/views/projects.py

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from ..records.models import Project


@dataclass(slots=True, frozen=True)
class ProjectPage:
    rows: list[Project]
    page: int
    total_pages: int
    total_items: int


def _id_key(p: Project) -> tuple[int, float, str]:
    # Numeric ids first in numeric order, anything else after them by text.
    try:
        return (0, float(p.id), p.id)
    except ValueError:
        return (1, 0.0, p.id)


def total_pages(count: int, items_per_page: int) -> int:
    return max(1, math.ceil(count / max(1, items_per_page)))


def filter_projects_by_name(projects: Iterable[Project], search_term: str | None) -> list[Project]:
    needle = (search_term or "").strip().lower()
    items = list(projects)
    if not needle:
        return items
    return [p for p in items if needle in p.name.lower()]


def project_page(
    projects: Iterable[Project],
    *,
    owner_id: str | None,
    search_term: str | None = "",
    page: int = 1,
    items_per_page: int = 7,
) -> ProjectPage:
    """
    The project management table: projects owned by owner_id, filtered by name,
    ordered by id, sliced to one page. The page number is clamped to [1, total_pages].
    """
    if owner_id is None:
        return ProjectPage(rows=[], page=1, total_pages=1, total_items=0)

    owned = [p for p in projects if p.is_owned_by(owner_id)]
    matched = sorted(filter_projects_by_name(owned, search_term), key=_id_key)

    per_page = max(1, int(items_per_page))
    pages = total_pages(len(matched), per_page)
    current = min(max(1, int(page)), pages)
    start = (current - 1) * per_page
    return ProjectPage(
        rows=matched[start : start + per_page],
        page=current,
        total_pages=pages,
        total_items=len(matched),
    )
