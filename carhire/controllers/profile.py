from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from ..services.customer_service import CustomerService
from ..utils.decorators import current_context, login_required

bp = Blueprint("profile", __name__, url_prefix="/profile")


@bp.get("")
@login_required
def show():
    ctx = current_context()
    customer = CustomerService.profile(ctx.identity_id)
    return render_template("customers/profile.html", customer=customer, ctx=ctx)


@bp.post("")
@login_required
def update():
    ok, msg = CustomerService.update_profile(current_context().identity_id, request.form)
    flash(msg, "success" if ok else "danger")
    return redirect(url_for("profile.show"))


@bp.post("/delete")
@login_required
def delete_account():
    ok, msg = CustomerService.delete_own_account(current_context().identity_id)
    if not ok:
        flash(msg, "danger")
        return redirect(url_for("profile.show"))
    session.clear()
    flash(msg, "success")
    return redirect(url_for("auth.login_form"))
