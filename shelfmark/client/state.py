"""Client-side view of one user's bookmark collection.

The view is fed by three unordered streams: page loads from the server,
the outcome of this session's own add/delete requests, and change events
pushed by the live feed (which echo this session's own mutations too).
``reduce`` folds one event into the current state and returns a new state.
It is pure and total: unknown events leave the state as it was.

Identifier-based idempotence is the only reconciliation rule. An insert
whose id is already in the view is a duplicate and changes nothing; a
delete of an absent id changes nothing. No timestamps or sequence numbers
are compared, so the optimistic result and its echo may arrive in either
order.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Union

from shelfmark.client.api import Bookmark


@dataclass(frozen=True)
class CollectionState:
    # Insertion order is display order: newest first.
    items: dict[str, Bookmark] = field(default_factory=dict)
    is_submitting: bool = False
    submit_error: str | None = None
    pending_deletes: frozenset[str] = frozenset()

    @property
    def bookmarks(self) -> list[Bookmark]:
        return list(self.items.values())

    def __contains__(self, bookmark_id: str) -> bool:
        return bookmark_id in self.items

    def __len__(self) -> int:
        return len(self.items)

    def is_deleting(self, bookmark_id: str) -> bool:
        return bookmark_id in self.pending_deletes


@dataclass(frozen=True)
class Loaded:
    items: tuple[Bookmark, ...]


@dataclass(frozen=True)
class MoreLoaded:
    items: tuple[Bookmark, ...]


@dataclass(frozen=True)
class RemoteInsert:
    bookmark: Bookmark


@dataclass(frozen=True)
class RemoteDelete:
    bookmark_id: str


@dataclass(frozen=True)
class AddStarted:
    pass


@dataclass(frozen=True)
class AddSucceeded:
    bookmark: Bookmark


@dataclass(frozen=True)
class AddFailed:
    message: str


@dataclass(frozen=True)
class AddErrorCleared:
    pass


@dataclass(frozen=True)
class DeleteStarted:
    bookmark_id: str


@dataclass(frozen=True)
class DeleteSucceeded:
    bookmark_id: str


@dataclass(frozen=True)
class DeleteFailed:
    bookmark_id: str


Event = Union[
    Loaded,
    MoreLoaded,
    RemoteInsert,
    RemoteDelete,
    AddStarted,
    AddSucceeded,
    AddFailed,
    AddErrorCleared,
    DeleteStarted,
    DeleteSucceeded,
    DeleteFailed,
]


def initial_state(bookmarks: Iterable[Bookmark] = ()) -> CollectionState:
    return CollectionState(items=_index(bookmarks))


def _index(bookmarks: Iterable[Bookmark]) -> dict[str, Bookmark]:
    indexed: dict[str, Bookmark] = {}
    for bookmark in bookmarks:
        indexed.setdefault(bookmark.id, bookmark)
    return indexed


def _prepend(items: dict[str, Bookmark], bookmark: Bookmark) -> dict[str, Bookmark]:
    if bookmark.id in items:
        return items
    return {bookmark.id: bookmark, **items}


def _without(items: dict[str, Bookmark], bookmark_id: str) -> dict[str, Bookmark]:
    if bookmark_id not in items:
        return items
    return {key: value for key, value in items.items() if key != bookmark_id}


def _on_loaded(state: CollectionState, event: Loaded) -> CollectionState:
    return replace(state, items=_index(event.items))


def _on_more_loaded(state: CollectionState, event: MoreLoaded) -> CollectionState:
    items = dict(state.items)
    for bookmark in event.items:
        items.setdefault(bookmark.id, bookmark)
    return replace(state, items=items)


def _on_remote_insert(state: CollectionState, event: RemoteInsert) -> CollectionState:
    items = _prepend(state.items, event.bookmark)
    if items is state.items:
        return state
    return replace(state, items=items)


def _on_remote_delete(state: CollectionState, event: RemoteDelete) -> CollectionState:
    return replace(
        state,
        items=_without(state.items, event.bookmark_id),
        pending_deletes=state.pending_deletes - {event.bookmark_id},
    )


def _on_add_started(state: CollectionState, event: AddStarted) -> CollectionState:
    return replace(state, is_submitting=True, submit_error=None)


def _on_add_succeeded(state: CollectionState, event: AddSucceeded) -> CollectionState:
    return replace(
        state,
        is_submitting=False,
        submit_error=None,
        items=_prepend(state.items, event.bookmark),
    )


def _on_add_failed(state: CollectionState, event: AddFailed) -> CollectionState:
    return replace(state, is_submitting=False, submit_error=event.message)


def _on_add_error_cleared(
    state: CollectionState, event: AddErrorCleared
) -> CollectionState:
    if state.submit_error is None:
        return state
    return replace(state, submit_error=None)


def _on_delete_started(state: CollectionState, event: DeleteStarted) -> CollectionState:
    return replace(state, pending_deletes=state.pending_deletes | {event.bookmark_id})


def _on_delete_succeeded(
    state: CollectionState, event: DeleteSucceeded
) -> CollectionState:
    return replace(
        state,
        items=_without(state.items, event.bookmark_id),
        pending_deletes=state.pending_deletes - {event.bookmark_id},
    )


def _on_delete_failed(state: CollectionState, event: DeleteFailed) -> CollectionState:
    # The entry stays in the view so the user sees the delete did not happen.
    return replace(state, pending_deletes=state.pending_deletes - {event.bookmark_id})


_HANDLERS: dict[type, Callable[[CollectionState, Event], CollectionState]] = {
    Loaded: _on_loaded,
    MoreLoaded: _on_more_loaded,
    RemoteInsert: _on_remote_insert,
    RemoteDelete: _on_remote_delete,
    AddStarted: _on_add_started,
    AddSucceeded: _on_add_succeeded,
    AddFailed: _on_add_failed,
    AddErrorCleared: _on_add_error_cleared,
    DeleteStarted: _on_delete_started,
    DeleteSucceeded: _on_delete_succeeded,
    DeleteFailed: _on_delete_failed,
}


def reduce(state: CollectionState, event: Event) -> CollectionState:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return state
    return handler(state, event)
