"""Read/insert/delete access to a user's bookmarks.

Every operation reports failure through the ``error`` field of its result
instead of raising, and none of them retries. Writes append to the change
feed inside the same transaction so subscribers only ever see committed
mutations.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from shelfmark.extensions import db
from shelfmark.models import Bookmark
from shelfmark.services.feed import ACTION_DELETE, ACTION_INSERT, log_bookmark_event
from shelfmark.services.urls import (
    INVALID_TITLE_MESSAGE,
    INVALID_URL_MESSAGE,
    is_valid_url,
    normalize_url,
    validate_title,
)

PAGE_SIZE = 50


@dataclass
class BookmarkPage:
    items: list[Bookmark] = field(default_factory=list)
    error: str | None = None
    has_more: bool = False


@dataclass
class InsertResult:
    item: Bookmark | None = None
    error: str | None = None


@dataclass
class RemoveResult:
    error: str | None = None


def _backend_message(exc: SQLAlchemyError) -> str:
    origin = getattr(exc, "orig", None)
    message = str(origin if origin is not None else exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def has_more_pages(total: int, page: int, page_size: int = PAGE_SIZE) -> bool:
    return total > (page + 1) * page_size


def list_bookmarks(user_id: int, page: int = 0) -> BookmarkPage:
    page = max(0, page)
    try:
        query = Bookmark.query.filter_by(user_id=user_id)
        total = query.count()
        items = (
            query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
            .offset(page * PAGE_SIZE)
            .limit(PAGE_SIZE)
            .all()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to list bookmarks for user %s: %s", user_id, exc
        )
        return BookmarkPage(error=_backend_message(exc))

    return BookmarkPage(items=items, has_more=has_more_pages(total, page))


def add_bookmark(user_id: int, url: str, title: str) -> InsertResult:
    if not is_valid_url(url):
        return InsertResult(error=INVALID_URL_MESSAGE)

    clean_title = validate_title(title)
    if clean_title is None:
        return InsertResult(error=INVALID_TITLE_MESSAGE)

    bookmark = Bookmark(
        user_id=user_id,
        url=normalize_url(url.strip()),
        title=clean_title,
    )
    try:
        db.session.add(bookmark)
        db.session.flush()
        log_bookmark_event(user_id, bookmark, ACTION_INSERT)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to save bookmark for user %s: %s", user_id, exc
        )
        return InsertResult(error=_backend_message(exc))

    return InsertResult(item=bookmark)


def remove_bookmark(user_id: int, bookmark_id: str) -> RemoveResult:
    try:
        bookmark = Bookmark.query.filter_by(id=bookmark_id, user_id=user_id).first()
        if bookmark is None:
            return RemoveResult()
        log_bookmark_event(user_id, bookmark, ACTION_DELETE)
        db.session.delete(bookmark)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Failed to delete bookmark %s for user %s: %s", bookmark_id, user_id, exc
        )
        return RemoveResult(error=_backend_message(exc))

    return RemoveResult()
