from __future__ import annotations

import logging
import threading
from typing import Callable

import httpx

from shelfmark.client.api import ApiError, BookmarkApi
from shelfmark.client.live import DEFAULT_POLL_INTERVAL, LiveFeed
from shelfmark.client.state import (
    AddErrorCleared,
    AddFailed,
    AddStarted,
    AddSucceeded,
    CollectionState,
    DeleteFailed,
    DeleteStarted,
    DeleteSucceeded,
    Event,
    Loaded,
    MoreLoaded,
    RemoteInsert,
    initial_state,
    reduce,
)
from shelfmark.services.urls import INVALID_URL_MESSAGE, is_valid_url

logger = logging.getLogger(__name__)

TITLE_REQUIRED_MESSAGE = "Title is required"
ADD_FAILED_MESSAGE = "Failed to add bookmark"
DELETE_CONFIRM_SECONDS = 3.0

_REQUEST_ERRORS = (ApiError, httpx.HTTPError, ValueError, KeyError)

Listener = Callable[[CollectionState], object]


class BookmarkSession:
    """The signed-in user's live bookmark view.

    ``dispatch`` is the only way the state changes. It applies one event
    under a lock, so the feed thread and callers never observe a partly
    applied transition.
    """

    def __init__(
        self,
        api: BookmarkApi,
        user_id: int | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.api = api
        self.user_id = user_id
        self._lock = threading.RLock()
        self._state = initial_state()
        self._listeners: list[Listener] = []
        self._page = 0
        self._has_more = False
        self.feed = LiveFeed(
            api,
            self._dispatch_remote,
            poll_interval=poll_interval,
            name=f"bookmark-feed-{user_id}" if user_id is not None else "bookmark-feed",
        )

    @property
    def state(self) -> CollectionState:
        return self._state

    @property
    def has_more(self) -> bool:
        return self._has_more

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: Event) -> CollectionState:
        with self._lock:
            previous = self._state
            self._state = reduce(previous, event)
            current = self._state
            listeners = list(self._listeners) if current is not previous else []
        for listener in listeners:
            listener(current)
        return current

    def _dispatch_remote(self, event: Event) -> CollectionState:
        if (
            self.user_id is not None
            and isinstance(event, RemoteInsert)
            and event.bookmark.user_id != self.user_id
        ):
            logger.warning(
                "Dropping feed insert %s owned by user %s",
                event.bookmark.id,
                event.bookmark.user_id,
            )
            return self._state
        return self.dispatch(event)

    def open(self) -> "BookmarkSession":
        page = self.api.list_bookmarks(0)
        self._page = 0
        self._has_more = page.has_more
        self.dispatch(Loaded(tuple(page.items)))
        self.feed.start(page.cursor)
        return self

    def close(self) -> None:
        self.feed.stop()

    def __enter__(self) -> "BookmarkSession":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def load_more(self) -> bool:
        if not self._has_more:
            return False
        try:
            page = self.api.list_bookmarks(self._page + 1)
        except _REQUEST_ERRORS as exc:
            logger.warning("Loading more bookmarks failed: %s", exc)
            return False
        self._page = page.page
        self._has_more = page.has_more
        self.dispatch(MoreLoaded(tuple(page.items)))
        return True

    def add(self, url: str, title: str) -> bool:
        if not is_valid_url(url):
            self.dispatch(AddFailed(INVALID_URL_MESSAGE))
            return False
        if not (title or "").strip():
            self.dispatch(AddFailed(TITLE_REQUIRED_MESSAGE))
            return False

        self.dispatch(AddStarted())
        try:
            bookmark = self.api.create_bookmark(url.strip(), title.strip())
        except ApiError as exc:
            self.dispatch(AddFailed(exc.message or ADD_FAILED_MESSAGE))
            return False
        except _REQUEST_ERRORS as exc:
            logger.warning("Adding bookmark failed: %s", exc)
            self.dispatch(AddFailed(ADD_FAILED_MESSAGE))
            return False

        self.dispatch(AddSucceeded(bookmark))
        return True

    def clear_add_error(self) -> None:
        if self._state.submit_error is not None:
            self.dispatch(AddErrorCleared())

    def delete(self, bookmark_id: str) -> bool:
        self.dispatch(DeleteStarted(bookmark_id))
        try:
            self.api.delete_bookmark(bookmark_id)
        except _REQUEST_ERRORS as exc:
            logger.warning("Delete failed: %s", exc)
            self.dispatch(DeleteFailed(bookmark_id))
            return False

        self.dispatch(DeleteSucceeded(bookmark_id))
        return True

    def confirm_delete(self, bookmark_id: str) -> "DeleteConfirmation":
        return DeleteConfirmation(self, bookmark_id)


class DeleteConfirmation:
    """Two-step delete for one bookmark.

    The first ``request`` only arms the confirmation; a second one inside the
    window performs the delete. The window is a local timer and has nothing
    to do with the network request.
    """

    def __init__(
        self,
        session: BookmarkSession,
        bookmark_id: str,
        window: float = DELETE_CONFIRM_SECONDS,
    ):
        self._session = session
        self.bookmark_id = bookmark_id
        self.window = window
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self.armed = False

    def request(self) -> bool:
        """Returns True when this call sent the delete."""
        with self._lock:
            if not self.armed:
                self.armed = True
                self._timer = threading.Timer(self.window, self._expire)
                self._timer.daemon = True
                self._timer.start()
                return False
            self._disarm()
        self._session.delete(self.bookmark_id)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._disarm()

    def _expire(self) -> None:
        with self._lock:
            # A timer cancelled too late must not disarm a newer request.
            if threading.current_thread() is not self._timer:
                return
            self.armed = False
            self._timer = None

    def _disarm(self) -> None:
        self.armed = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
