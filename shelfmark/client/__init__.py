from shelfmark.client.api import ApiError, Bookmark, BookmarkApi
from shelfmark.client.live import LiveFeed
from shelfmark.client.session import BookmarkSession, DeleteConfirmation
from shelfmark.client.state import CollectionState, initial_state, reduce

__all__ = [
    "ApiError",
    "Bookmark",
    "BookmarkApi",
    "BookmarkSession",
    "CollectionState",
    "DeleteConfirmation",
    "LiveFeed",
    "initial_state",
    "reduce",
]
