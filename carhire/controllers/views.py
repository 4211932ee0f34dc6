from flask import Blueprint, render_template, request

from ..services.car_service import CarService
from ..services.customer_service import CustomerService
from ..utils.decorators import current_context

bp = Blueprint("views", __name__)


@bp.get("/")
def home():
    """Storefront: available cars for everyone, plus the customer's own rentals when signed in."""
    q = {k: (v or "").strip() for k, v in request.args.items()}
    cars = CarService.available_cars(keyword=q.get("q"), max_rate=q.get("max"))

    ctx = current_context()
    rentals = CustomerService.rentals_for_customer(ctx.identity_id) if ctx else []
    return render_template("home.html", cars=cars, rentals=rentals, ctx=ctx, q=q)
