from __future__ import annotations

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from shelfmark.api import api_bp
from shelfmark.extensions import db
from shelfmark.models import ApiToken, User
from shelfmark.services.bookmarks import add_bookmark, list_bookmarks, remove_bookmark
from shelfmark.services.feed import latest_cursor, pull_events
from shelfmark.services.security import api_auth_required


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    return payload


@api_bp.errorhandler(Exception)
def handle_unexpected_error(exc):
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.exception("[%s %s] unhandled error", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "ShelfMark"})


@api_bp.route("/auth/bootstrap", methods=["POST"])
def bootstrap_user():
    if User.query.count() > 0:
        return jsonify({"error": "bootstrap already completed"}), 409

    payload = _json_payload()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400

    user = User(username=username, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return jsonify({"status": "created", "user_id": user.id}), 201


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _json_payload()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    token_name = (payload.get("token_name") or "ShelfMark API Token").strip()

    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=user.id, name=token_name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required
def bookmarks_list_api():
    user = g.api_user
    page = max(0, request.args.get("page", default=0, type=int))
    # Head is read before the snapshot: the feed may replay a mutation the
    # page already contains, never skip one.
    cursor = latest_cursor(user.id)
    result = list_bookmarks(user.id, page)
    if result.error:
        return jsonify({"error": result.error}), 400
    return jsonify(
        {
            "data": [item.as_dict() for item in result.items],
            "has_more": result.has_more,
            "page": page,
            "cursor": cursor,
        }
    )


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required
def bookmarks_create_api():
    user = g.api_user
    payload = _json_payload()
    url = payload.get("url")
    title = payload.get("title")
    if not isinstance(url, str) or not isinstance(title, str) or not url or not title:
        return jsonify({"error": "URL and title are required"}), 400

    result = add_bookmark(user.id, url, title)
    if result.error:
        return jsonify({"error": result.error}), 400
    return jsonify({"data": result.item.as_dict()}), 201


@api_bp.route("/bookmarks", methods=["DELETE"])
@api_auth_required
def bookmarks_delete_api():
    user = g.api_user
    bookmark_id = (request.args.get("id") or "").strip()
    if not bookmark_id:
        return jsonify({"error": "Bookmark ID is required"}), 400

    result = remove_bookmark(user.id, bookmark_id)
    if result.error:
        return jsonify({"error": result.error}), 400
    return jsonify({"success": True}), 200


@api_bp.route("/bookmarks/events", methods=["GET"])
@api_auth_required
def bookmarks_events_api():
    user = g.api_user
    since = request.args.get("since", type=int)
    if since is None:
        return jsonify({"events": [], "cursor": latest_cursor(user.id), "has_more": False})

    max_limit = current_app.config["FEED_PULL_LIMIT"]
    limit = request.args.get("limit", default=max_limit, type=int)
    limit = max(1, min(limit, max_limit))
    batch = pull_events(user.id, max(0, since), limit)
    return jsonify(
        {
            "events": [event.as_dict() for event in batch.events],
            "cursor": batch.cursor,
            "has_more": batch.has_more,
        }
    )
