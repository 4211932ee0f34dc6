from functools import wraps

from flask import flash, g, redirect, session, url_for

from ..services.auth_service import SessionContext


def current_context():
    """SessionContext for this request, or None when signed out (cached on flask.g)."""
    if "ctx" not in g:
        g.ctx = SessionContext.from_session(session.get("auth"))
        if g.ctx is None and "auth" in session:
            # identity or profile vanished since sign-in
            session.clear()
    return g.ctx


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_context() is None:
            flash("Please sign in to continue.", "warning")
            return redirect(url_for("auth.login_form"))
        return fn(*args, **kwargs)

    return wrapper


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        ctx = current_context()
        if ctx is None:
            flash("Please sign in to continue.", "warning")
            return redirect(url_for("auth.login_form"))
        if not ctx.is_admin:
            flash("Insufficient permission", "danger")
            return redirect(url_for("views.home"))
        return fn(*args, **kwargs)

    return wrapper
