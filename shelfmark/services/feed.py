from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from shelfmark.extensions import db
from shelfmark.models import Bookmark, BookmarkEvent, User


ACTION_INSERT = "insert"
ACTION_DELETE = "delete"

FEED_ACTIONS = {ACTION_INSERT, ACTION_DELETE}


@dataclass
class FeedBatch:
    events: list[BookmarkEvent]
    cursor: int
    has_more: bool


def serialize_bookmark(bookmark: Bookmark) -> dict:
    return bookmark.as_dict()


def log_bookmark_event(user_id: int, bookmark: Bookmark, action: str) -> None:
    """Record a change in the caller's open transaction.

    The owner's row stays locked until that transaction ends, so a user's
    event ids become visible in increasing order and a reader resuming from
    ``id > since`` cannot skip a slower writer. SQLite serializes writers
    already and ignores the lock.
    """
    if action not in FEED_ACTIONS:
        raise ValueError(f"unsupported feed action: {action}")
    db.session.execute(
        db.select(User.id).where(User.id == user_id).with_for_update()
    )
    event = BookmarkEvent(
        user_id=user_id,
        bookmark_id=bookmark.id,
        action=action,
        payload=serialize_bookmark(bookmark),
    )
    db.session.add(event)
    db.session.flush()


def latest_cursor(user_id: int) -> int:
    return (
        db.session.query(db.func.max(BookmarkEvent.id))
        .filter(BookmarkEvent.user_id == user_id)
        .scalar()
        or 0
    )


def pull_events(user_id: int, since: int, limit: int) -> FeedBatch:
    events = (
        BookmarkEvent.query.filter_by(user_id=user_id)
        .filter(BookmarkEvent.id > since)
        .order_by(BookmarkEvent.id.asc())
        .limit(limit)
        .all()
    )
    cursor = events[-1].id if events else since
    return FeedBatch(events=events, cursor=cursor, has_more=len(events) == limit)


def prune_events(older_than: datetime) -> int:
    removed = BookmarkEvent.query.filter(
        BookmarkEvent.created_at < older_than
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed
