from flask import redirect, render_template, request, url_for
from flask_login import current_user, login_required

from shelfmark.services.bookmarks import list_bookmarks
from shelfmark.web import web_bp


@web_bp.route("/")
def index():
    if current_user.is_authenticated:
        return redirect(url_for("web.dashboard"))
    return render_template("landing.html", error=request.args.get("error"))


@web_bp.route("/dashboard")
@login_required
def dashboard():
    result = list_bookmarks(current_user.id)
    return render_template(
        "dashboard.html",
        bookmarks=result.items,
        has_more=result.has_more,
        load_error=result.error,
    )
