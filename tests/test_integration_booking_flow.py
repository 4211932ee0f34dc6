"""
End-to-end flows through the Flask routes: register, book a car through every
wizard step, admin edits and account deletion.
"""

from conftest import COMPLETE_PROFILE, PASSWORD, add_customer, login

ALLOWED = (200, 302)


def _booking_step(client):
    with client.session_transaction() as sess:
        data = sess.get("booking")
        return data["step"] if data else None


def _is_signed_in(client):
    with client.session_transaction() as sess:
        return bool(sess.get("auth"))


def test_home_lists_available_cars_anonymously(client, car_id):
    r = client.get("/")
    assert r.status_code == 200
    body = r.get_data(as_text=True)
    assert "Volkswagen Golf" in body
    assert "Sign in to rent" in body


def test_protected_pages_require_login(client, car_id):
    for path in (f"/booking/car/{car_id}", "/booking", "/profile", "/admin"):
        r = client.get(path)
        assert r.status_code == 302, path
        assert "/login" in r.headers["Location"]


def test_register_then_book_through_every_step(client, store, car_id):
    r = client.post("/register", data={"email": "new@example.com", "password": PASSWORD})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/profile")
    assert _is_signed_in(client)

    r = client.get(f"/booking/car/{car_id}")
    assert r.status_code == 302
    assert _booking_step(client) == "dates"
    assert client.get("/booking").status_code == 200

    client.post("/booking/dates", data={"insurance_type": "basic",
                                        "start_date": "2030-06-01", "end_date": "2030-06-04"})
    assert _booking_step(client) == "details"

    r = client.post("/booking/details", data={**COMPLETE_PROFILE, "city": " "}, follow_redirects=True)
    assert "This field is required." in r.get_data(as_text=True)
    assert _booking_step(client) == "details"

    client.post("/booking/details", data=COMPLETE_PROFILE)
    assert _booking_step(client) == "payment"

    r = client.post("/booking/payment", data={"card_number": "4111111111111234", "card_name": "J DRIVER",
                                              "expiry_date": "1230", "cvv": "12"}, follow_redirects=True)
    body = r.get_data(as_text=True)
    assert "Please use MM/YY format" in body and "CVV must be at least 3 digits" in body
    assert _booking_step(client) == "payment"

    client.post("/booking/payment", data={"card_number": "4111111111111234", "card_name": "J DRIVER",
                                          "expiry_date": "12/30", "cvv": "123"})
    assert _booking_step(client) == "confirmation"
    assert "£195.00" in client.get("/booking").get_data(as_text=True)

    r = client.post("/booking/submit")
    assert r.status_code == 302
    assert "/booking/invoice/" in r.headers["Location"]
    assert _booking_step(client) is None

    (rental,) = store.list_rentals()
    assert rental["status"] == "active"
    assert store.payment_for_rental(rental["rental_id"])["amount"] == 195
    assert store.get_car(car_id)["status"] == "rented"

    r = client.get(r.headers["Location"])
    assert r.status_code == 200
    assert "£195.00" in r.get_data(as_text=True)


def test_reopening_wizard_starts_over(client, store, car_id, customer_id):
    login(client, "jane@example.com")
    client.get(f"/booking/car/{car_id}")
    client.post("/booking/dates", data={"insurance_type": "premium",
                                        "start_date": "2030-06-01", "end_date": "2030-06-02"})
    assert _booking_step(client) == "payment"

    client.get(f"/booking/car/{car_id}")
    assert _booking_step(client) == "dates"
    with client.session_transaction() as sess:
        assert sess["booking"]["tier"] == "basic"


def test_car_under_maintenance_cannot_be_booked(client, store, car_id, customer_id):
    store.update_car_status(car_id, "maintenance")
    login(client, "jane@example.com")

    r = client.get(f"/booking/car/{car_id}", follow_redirects=True)
    assert r.status_code == 200
    assert "Car is not available" in r.get_data(as_text=True)
    assert _booking_step(client) is None
    assert store.get_car(car_id)["status"] == "maintenance"


def test_out_of_order_post_keeps_current_step(client, car_id, customer_id):
    login(client, "jane@example.com")
    client.get(f"/booking/car/{car_id}")
    r = client.post("/booking/submit", follow_redirects=True)
    assert r.status_code == 200
    assert "not available" in r.get_data(as_text=True)
    assert _booking_step(client) == "dates"


def test_customer_cannot_open_admin(client, customer_id):
    login(client, "jane@example.com")
    r = client.get("/admin")
    assert r.status_code == 302


def test_admin_completing_rental_frees_car(client, store, car_id, customer_id):
    add_customer(store, email="boss@example.com", admin=True)
    rid = store.insert_rental({"car_id": car_id, "customer_id": customer_id, "status": "active",
                               "start_date": "2030-06-01T00:00:00+00:00",
                               "end_date": "2030-06-04T00:00:00+00:00"})
    store.update_car_status(car_id, "rented")

    login(client, "boss@example.com")
    assert client.get("/admin").status_code == 200

    r = client.post(f"/admin/rentals/{rid}/update",
                    data={"status": "completed", "start_date": "2030-06-01", "end_date": "2030-06-04"})
    assert r.status_code in ALLOWED
    assert store.get_rental(rid)["status"] == "completed"
    assert store.get_car(car_id)["status"] == "available"


def test_admin_deletes_customer(client, store, car_id, customer_id):
    add_customer(store, email="boss@example.com", admin=True)
    rid = store.insert_rental({"car_id": car_id, "customer_id": customer_id, "status": "active"})
    store.update_car_status(car_id, "rented")

    login(client, "boss@example.com")
    r = client.post(f"/admin/customers/{customer_id}/delete", follow_redirects=True)
    assert "deleted successfully" in r.get_data(as_text=True)
    assert store.get_rental(rid)["status"] == "cancelled"
    assert store.get_car(car_id)["status"] == "available"
    assert store.get_identity(customer_id) is not None


def test_delete_own_account_signs_out_and_blocks_login(client, store, car_id, customer_id):
    login(client, "jane@example.com")
    assert _is_signed_in(client)

    r = client.post("/profile/delete")
    assert r.status_code == 302
    assert not _is_signed_in(client)
    assert store.fetch_customer_profile(customer_id) is None

    r = login(client, "jane@example.com", follow=True)
    assert "Your account has been deleted" in r.get_data(as_text=True)
    assert not _is_signed_in(client)


def test_login_wrong_password(client, customer_id):
    r = login(client, "jane@example.com", password="Wrong123", follow=True)
    assert r.status_code == 200
    assert "Invalid email or password" in r.get_data(as_text=True)
    assert not _is_signed_in(client)


def test_profile_update(client, store, new_customer_id):
    login(client, "new@example.com")
    r = client.post("/profile", data={"first_name": " Sam ", "city": "York"}, follow_redirects=True)
    assert r.status_code == 200
    profile = store.fetch_customer_profile(new_customer_id)
    assert profile["first_name"] == "Sam"
    assert profile["city"] == "York"
