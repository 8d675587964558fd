from flask import redirect, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from shelfmark.auth import auth_bp
from shelfmark.models import User


@auth_bp.route("/login", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("web.dashboard"))

    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""

    user = User.query.filter_by(username=username).first()
    if user and user.is_active and user.check_password(password):
        login_user(user)
        return redirect(url_for("web.dashboard"))
    return redirect(url_for("web.index", error="invalid_credentials"))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("web.index"))
