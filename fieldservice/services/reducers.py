# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Collection reducers, pure computation with no side effects.

Each reducer takes the current list and returns a new one. Writers always go
through ``Collection.apply`` so a reducer sees the state as it is when the
remote call settles, not as it was when the call started.
"""

from typing import Callable, Iterable, TypeVar

from fieldservice.models.domain import Comment, ServiceInstance, Volunteer

T = TypeVar("T")

Reducer = Callable[[list[T]], list[T]]


def append(*items: T) -> Reducer:
    return lambda current: [*current, *items]


def remove_id(item_id: str) -> Reducer:
    return lambda current: [i for i in current if i.id != item_id]


def remove_ids(item_ids: Iterable[str]) -> Reducer:
    doomed = set(item_ids)
    return lambda current: [i for i in current if i.id not in doomed]


def replace_id(item_id: str, replacement: T) -> Reducer:
    """Swap the record whose id is ``item_id``; no-op when it is gone."""
    return lambda current: [replacement if i.id == item_id else i for i in current]


def replace_many(replacements: dict[str, T]) -> Reducer:
    return lambda current: [replacements.get(i.id, i) for i in current]


def with_applicants(
    service_id: str, applicants: list[Volunteer]
) -> Reducer:
    """Swap one instance's whole applicants list."""

    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(update={"applicants": list(applicants)}) if s.id == service_id else s
            for s in current
        ]

    return reduce


def with_comments(service_id: str, comments: list[Comment]) -> Reducer:
    """Swap one instance's whole comments list."""

    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(update={"comments": list(comments)}) if s.id == service_id else s
            for s in current
        ]

    return reduce


def add_applicant(service_id: str, volunteer: Volunteer) -> Reducer:
    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(update={"applicants": [*s.applicants, volunteer]})
            if s.id == service_id
            else s
            for s in current
        ]

    return reduce


def drop_applicant(service_id: str, volunteer_id: str) -> Reducer:
    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(
                update={"applicants": [v for v in s.applicants if v.id != volunteer_id]}
            )
            if s.id == service_id
            else s
            for s in current
        ]

    return reduce


def add_comment(service_id: str, comment: Comment) -> Reducer:
    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(update={"comments": [*s.comments, comment]})
            if s.id == service_id
            else s
            for s in current
        ]

    return reduce


def edit_comment(service_id: str, comment_id: str, text: str) -> Reducer:
    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(
                update={
                    "comments": [
                        c.model_copy(update={"text": text}) if c.id == comment_id else c
                        for c in s.comments
                    ]
                }
            )
            if s.id == service_id
            else s
            for s in current
        ]

    return reduce


def drop_comment(service_id: str, comment_id: str) -> Reducer:
    def reduce(current: list[ServiceInstance]) -> list[ServiceInstance]:
        return [
            s.model_copy(update={"comments": [c for c in s.comments if c.id != comment_id]})
            if s.id == service_id
            else s
            for s in current
        ]

    return reduce
