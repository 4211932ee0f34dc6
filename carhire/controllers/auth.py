from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from ..services.auth_service import AuthService
from ..utils.decorators import current_context

bp = Blueprint("auth", __name__, url_prefix="/")


def _start_session(ctx):
    session.clear()
    session["auth"] = ctx.to_session()


@bp.get("register")
def register_form():
    return render_template("auth/register.html")


@bp.post("register")
def register_submit():
    ok, msg, ctx = AuthService.register(request.form.get("email"), request.form.get("password"))
    if not ok:
        flash(msg, "danger")
        return redirect(url_for("auth.register_form"))
    _start_session(ctx)
    flash(msg, "success")
    return redirect(url_for("profile.show"))


@bp.get("login")
def login_form():
    if current_context() is not None:
        return redirect(url_for("views.home"))
    return render_template("auth/login.html")


@bp.post("login")
def login_submit():
    ok, msg, ctx = AuthService.sign_in(request.form.get("email"), request.form.get("password"))
    if not ok:
        flash(msg, "danger")
        return redirect(url_for("auth.login_form"))
    _start_session(ctx)
    return redirect(url_for("views.home"))


@bp.get("logout")
def logout():
    session.clear()
    flash("Signed out")
    return redirect(url_for("auth.login_form"))
