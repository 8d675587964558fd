from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import httpx
from dateutil import parser as dt_parser

DEFAULT_HEADERS = {
    "User-Agent": "ShelfMarkClient/1.0",
    "Accept": "application/json",
}


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class Bookmark:
    id: str
    user_id: int
    url: str
    title: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "Bookmark":
        return cls(
            id=str(data["id"]),
            user_id=data.get("user_id"),
            url=data["url"],
            title=data["title"],
            created_at=dt_parser.isoparse(data["created_at"]),
            updated_at=dt_parser.isoparse(data["updated_at"]),
        )


@dataclass
class BookmarkPage:
    items: list[Bookmark]
    has_more: bool
    page: int
    cursor: int


@dataclass
class FeedEvent:
    cursor: int
    action: str
    bookmark_id: str
    data: dict


@dataclass
class FeedBatch:
    events: list[FeedEvent]
    cursor: int
    has_more: bool


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return fallback


class BookmarkApi:
    """Thin synchronous client for the ``/api`` bookmark endpoints.

    Non-2xx answers raise :class:`ApiError` carrying the server's message.
    Transport failures surface as ``httpx.HTTPError``.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = dict(DEFAULT_HEADERS)
        headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _check(self, response: httpx.Response, fallback: str) -> dict:
        if response.is_success:
            return response.json()
        raise ApiError(response.status_code, _error_message(response, fallback))

    def list_bookmarks(self, page: int = 0) -> BookmarkPage:
        response = self._client.get("/api/bookmarks", params={"page": page})
        payload = self._check(response, "Failed to load bookmarks")
        return BookmarkPage(
            items=[Bookmark.from_dict(row) for row in payload.get("data") or []],
            has_more=bool(payload.get("has_more")),
            page=int(payload.get("page", page)),
            cursor=int(payload.get("cursor") or 0),
        )

    def create_bookmark(self, url: str, title: str) -> Bookmark:
        response = self._client.post(
            "/api/bookmarks", json={"url": url, "title": title}
        )
        payload = self._check(response, "Failed to add bookmark")
        return Bookmark.from_dict(payload["data"])

    def delete_bookmark(self, bookmark_id: str) -> None:
        response = self._client.delete("/api/bookmarks", params={"id": bookmark_id})
        self._check(response, "Failed to delete bookmark")

    def feed_head(self) -> int:
        response = self._client.get("/api/bookmarks/events")
        payload = self._check(response, "Failed to open bookmark feed")
        return int(payload.get("cursor") or 0)

    def pull_events(self, since: int, limit: int | None = None) -> FeedBatch:
        params = {"since": since}
        if limit is not None:
            params["limit"] = limit
        response = self._client.get("/api/bookmarks/events", params=params)
        payload = self._check(response, "Failed to read bookmark feed")
        return FeedBatch(
            events=[
                FeedEvent(
                    cursor=int(row["cursor"]),
                    action=row["action"],
                    bookmark_id=str(row["bookmark_id"]),
                    data=row.get("data") or {},
                )
                for row in payload.get("events") or []
            ],
            cursor=int(payload.get("cursor") or since),
            has_more=bool(payload.get("has_more")),
        )
