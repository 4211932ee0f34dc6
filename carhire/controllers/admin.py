from flask import Blueprint, flash, redirect, render_template, request, url_for

from ..services.car_service import CarService
from ..services.customer_service import CustomerService
from ..services.rental_service import RentalService
from ..utils.constants import CAR_STATUSES, RENTAL_STATUSES
from ..utils.decorators import admin_required

bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.get("")
@admin_required
def dashboard():
    """Admin dashboard: cars, customers and rentals in one page."""
    return render_template(
        "admin/dashboard.html",
        cars=CarService.all_cars(),
        locations=CarService.locations(),
        customers=CustomerService.all_customers(),
        rentals=RentalService.all_rentals(),
        car_statuses=CAR_STATUSES,
        rental_statuses=RENTAL_STATUSES,
    )


def _back(ok, msg):
    flash(msg, "success" if ok else "danger")
    return redirect(url_for("admin.dashboard"))


@bp.post("/cars/add")
@admin_required
def add_car():
    ok, msg, _ = CarService.admin_create_car(request.form)
    return _back(ok, msg)


@bp.post("/cars/<car_id>/update")
@admin_required
def update_car(car_id):
    return _back(*CarService.admin_update_car(car_id, request.form))


@bp.post("/cars/<car_id>/delete")
@admin_required
def delete_car(car_id):
    return _back(*CarService.admin_delete_car(car_id))


@bp.post("/customers/<customer_id>/update")
@admin_required
def update_customer(customer_id):
    return _back(*CustomerService.admin_update_customer(customer_id, request.form))


@bp.post("/customers/<customer_id>/delete")
@admin_required
def delete_customer(customer_id):
    return _back(*CustomerService.admin_delete_customer(customer_id))


@bp.post("/rentals/<rental_id>/update")
@admin_required
def update_rental(rental_id):
    return _back(*RentalService.admin_update_rental(rental_id, request.form))
