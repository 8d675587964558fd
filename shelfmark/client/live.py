from __future__ import annotations

import logging
import threading
from typing import Callable

from shelfmark.client.api import Bookmark, BookmarkApi, FeedEvent
from shelfmark.client.state import Event, RemoteDelete, RemoteInsert

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


def translate_event(event: FeedEvent) -> Event | None:
    if event.action == "insert":
        return RemoteInsert(Bookmark.from_dict(event.data))
    if event.action == "delete":
        return RemoteDelete(event.bookmark_id)
    return None


class LiveFeed:
    """One polling subscription to the signed-in user's change feed.

    The server scopes the feed to the caller's own rows, so every event is
    forwarded as-is. ``start`` while running and repeated ``stop`` calls are
    no-ops. Each run owns its stop flag, so a poller that outlives a timed
    out ``stop`` never resumes once a newer run has started.
    """

    def __init__(
        self,
        api: BookmarkApi,
        dispatch: Callable[[Event], object],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        name: str = "bookmark-feed",
    ):
        self._api = api
        self._dispatch = dispatch
        self._poll_interval = poll_interval
        self._name = name
        self._lock = threading.Lock()
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self.cursor: int | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, cursor: int | None = None) -> bool:
        with self._lock:
            if self.is_running:
                return False
            if cursor is None:
                cursor = self._api.feed_head()
            self.cursor = cursor
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run, args=(stop_event,), daemon=True, name=self._name
            )
            self._thread.start()
        logger.debug("Opened %s at cursor %s", self._name, cursor)
        return True

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            if self._stop_event is not None:
                self._stop_event.set()
                self._stop_event = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("%s still finishing a poll after stop", self._name)
            logger.debug("Closed %s", self._name)

    def poll_once(self, stop_event: threading.Event | None = None) -> int:
        """Pull every event past the cursor and dispatch it. Returns the count.

        Once ``stop_event`` is set nothing more is dispatched and the cursor
        is left alone.
        """
        if self.cursor is None:
            self.cursor = self._api.feed_head()
        delivered = 0
        while True:
            batch = self._api.pull_events(self.cursor)
            for feed_event in batch.events:
                if stop_event is not None and stop_event.is_set():
                    return delivered
                try:
                    event = translate_event(feed_event)
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning(
                        "Skipping malformed feed event %s: %s", feed_event.cursor, exc
                    )
                    event = None
                else:
                    if event is None:
                        logger.warning(
                            "Ignoring feed event %s with action %r",
                            feed_event.cursor,
                            feed_event.action,
                        )
                if event is not None:
                    self._dispatch(event)
                    delivered += 1
                self.cursor = feed_event.cursor
            if stop_event is not None and stop_event.is_set():
                return delivered
            self.cursor = max(self.cursor, batch.cursor)
            if not batch.has_more or not batch.events:
                return delivered

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._poll_interval):
            try:
                self.poll_once(stop_event)
            except Exception as exc:
                logger.exception("Bookmark feed poll failed, retrying: %s", exc)
