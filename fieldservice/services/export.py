# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: CSV exports of pairing and spot assignments.

Files are written for spreadsheet software: UTF-8 with a byte-order mark,
comma separated, minimal quoting.
"""

import csv
import io
import re
from typing import Iterable

from fieldservice.models.domain import Comment, ServiceInstance, Volunteer
from fieldservice.services.calendar import local_zone

BOM = "\ufeff"
DOOR_TO_DOOR_MARKER = "(door-to-door only)"
NAME_SEPARATOR = "  "


def display_name(instance: ServiceInstance, volunteer: Volunteer) -> str:
    if instance.is_door_to_door_only(volunteer):
        return f"{volunteer.name} {DOOR_TO_DOOR_MARKER}"
    return volunteer.name


def _names(instance: ServiceInstance, members: Iterable[Volunteer]) -> str:
    return NAME_SEPARATOR.join(display_name(instance, v) for v in members)


def _format_created_at(comment: Comment) -> str:
    stamp = comment.created_at_dt()
    if stamp.year == 1:
        # unparseable stamp, keep it as stored
        return comment.created_at
    return stamp.astimezone(local_zone()).strftime("%Y-%m-%d %H:%M")


def _header_rows(instance: ServiceInstance) -> list[list[str]]:
    return [
        [f"Date: {instance.date} {instance.time}"],
        [f"Type: {instance.type.value}"],
        [f"Location: {instance.location}"],
        [],
    ]


def _comment_rows(instance: ServiceInstance) -> list[list[str]]:
    comments = instance.sorted_comments()
    if not comments:
        return []
    rows = [[], [f"Comments ({len(comments)})"], ["Author", "Text", "Created"]]
    rows.extend([c.author_name, c.text, _format_created_at(c)] for c in comments)
    return rows


def _render(rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return BOM + buffer.getvalue()


def pairing_csv(
    instance: ServiceInstance,
    groups: list[list[Volunteer]],
    unassigned: list[Volunteer],
) -> str:
    """One row per group (label, members); unassigned members on their own row."""
    rows = _header_rows(instance)
    rows.append(["Group", "Members"])
    rows.extend([f"Group {i}", _names(instance, group)] for i, group in enumerate(groups, start=1))
    if unassigned:
        rows.append([])
        rows.append(["Unassigned", *(display_name(instance, v) for v in unassigned)])
    rows.extend(_comment_rows(instance))
    return _render(rows)


def spot_grid_csv(
    instance: ServiceInstance,
    spots: list[str],
    groups: list[str],
    assignments: dict[str, list[Volunteer]],
) -> str:
    """One row per group, one column per spot; cells hold member names."""
    rows = _header_rows(instance)
    rows.append(["Group", *spots])
    for group in groups:
        rows.append(
            [group, *(_names(instance, assignments.get(f"{spot}-{group}", [])) for spot in spots)]
        )
    rows.extend(_comment_rows(instance))
    return _render(rows)


def _slug(text: str) -> str:
    return re.sub(r"[\\/:*?\"<>|\s]+", "_", text).strip("_") or "service"


def pairing_filename(instance: ServiceInstance) -> str:
    return f"{instance.date}_{_slug(instance.type.value)}_pairs.csv"


def spot_grid_filename(instance: ServiceInstance) -> str:
    return f"{instance.date.replace('-', '')}_spots_{_slug(instance.location)}.csv"
