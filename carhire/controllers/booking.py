from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from ..exceptions import CarNotFoundError, CarUnavailableError, IllegalTransitionError
from ..services.booking import BookingWorkflow, Step
from ..services.rental_service import RentalService
from ..utils.constants import PROFILE_FIELDS, TIER_DAILY_RATES
from ..utils.decorators import current_context, login_required

bp = Blueprint("booking", __name__, url_prefix="/booking")

SESSION_KEY = "booking"


def _load():
    """The wizard held in the session for the signed-in customer, or None."""
    data = session.get(SESSION_KEY)
    if not data or data.get("identity_id") != current_context().identity_id:
        return None
    return BookingWorkflow.from_dict(data)


def _save(wf: BookingWorkflow):
    session[SESSION_KEY] = wf.to_dict()


def _show(wf: BookingWorkflow):
    _save(wf)
    return redirect(url_for("booking.current"))


@bp.get("/car/<car_id>")
@login_required
def open_wizard(car_id):
    """Opening always starts again from the dates step."""
    try:
        wf = BookingWorkflow.start(car_id, current_context().identity_id)
    except CarNotFoundError:
        flash("Car not found", "danger")
        return redirect(url_for("views.home"))
    except CarUnavailableError as e:
        flash(e.message, "warning")
        return redirect(url_for("views.home"))
    return _show(wf)


@bp.get("")
@login_required
def current():
    wf = _load()
    if wf is None or wf.step is Step.CLOSED:
        return redirect(url_for("views.home"))
    return render_template(
        f"booking/{wf.step.value}.html",
        wf=wf,
        quote=wf.quote,
        summary=wf.summary(),
        tiers=TIER_DAILY_RATES,
        profile_fields=PROFILE_FIELDS,
    )


def _step_action(handler):
    """Run one wizard action; an out-of-order post just re-renders the current step."""
    wf = _load()
    if wf is None:
        flash("Your booking session has expired. Please start again.", "warning")
        return redirect(url_for("views.home"))
    try:
        result = handler(wf)
    except IllegalTransitionError:
        flash("That step is not available right now.", "warning")
        return _show(wf)
    return result if result is not None else _show(wf)


@bp.post("/dates")
@login_required
def choose_dates():
    def handler(wf):
        ok, _ = wf.choose_dates(
            request.form.get("insurance_type"),
            request.form.get("start_date"),
            request.form.get("end_date"),
        )
        if not ok:
            flash("Please check the highlighted fields.", "danger")

    return _step_action(handler)


@bp.post("/details")
@login_required
def save_details():
    def handler(wf):
        fields = {name: request.form.get(name) for name in PROFILE_FIELDS if name in request.form}
        ok, errors = wf.save_details(fields)
        if ok:
            flash("Your details have been saved successfully.", "success")
        elif "form" in errors:
            flash(errors["form"], "danger")
        else:
            flash("Please fill in all required fields.", "danger")

    return _step_action(handler)


@bp.post("/payment")
@login_required
def pay():
    def handler(wf):
        ok, _ = wf.pay(
            card_number=request.form.get("card_number", ""),
            card_name=request.form.get("card_name", ""),
            expiry_date=request.form.get("expiry_date", ""),
            cvv=request.form.get("cvv", ""),
        )
        if not ok:
            flash("Please fill in all payment fields correctly.", "danger")

    return _step_action(handler)


@bp.post("/back")
@login_required
def back():
    return _step_action(lambda wf: wf.back())


@bp.post("/submit")
@login_required
def submit():
    def handler(wf):
        ok, msg, rental_id = wf.submit()
        if not ok:
            flash(msg, "danger")
            return None
        session.pop(SESSION_KEY, None)
        flash(msg, "success")
        return redirect(url_for("booking.invoice", rental_id=rental_id))

    return _step_action(handler)


@bp.post("/close")
@login_required
def close():
    wf = _load()
    if wf is not None and wf.step is not Step.CLOSED:
        wf.close()
    session.pop(SESSION_KEY, None)
    return redirect(url_for("views.home"))


@bp.get("/invoice/<rental_id>")
@login_required
def invoice(rental_id):
    inv = RentalService.invoice(rental_id)
    ctx = current_context()
    if not inv or (inv.get("customer_id") != ctx.identity_id and not ctx.is_admin):
        flash("Invoice not found", "warning")
        return redirect(url_for("views.home"))
    return render_template("booking/invoice.html", inv=inv)
