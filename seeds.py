from carhire import create_app
from carhire.models.store import Store
from carhire.utils.security import generate_hash


def ensure_identity(store: Store, email: str, password: str, admin: bool = False, **profile):
    """
    Ensure an identity with `email` exists in the store, with a profile.
    - If exists: reset password hash (idempotent).
    - If not:   create a new identity.
    """
    ident = store.find_identity(email)
    if ident:
        store.identities[ident["identity_id"]]["password_hash"] = generate_hash(password)
        identity_id = ident["identity_id"]
    else:
        identity_id = store.create_identity(email, generate_hash(password))
    store.upsert_customer_profile(identity_id, {**profile, "admin": admin})
    return identity_id


def main():
    app = create_app()
    with app.app_context():
        store = Store.instance()

        # ---- Admin / customer demo accounts ----
        ensure_identity(store, "admin@example.com", "Admin123", admin=True, first_name="Site", last_name="Admin")
        ensure_identity(
            store, "customer@example.com", "Customer123",
            first_name="Jane", last_name="Driver", licence_number="DRIVE801234JD9AB",
            address_line1="1 High Street", city="Leeds", county="West Yorkshire",
            postcode="LS1 1AA", date_of_birth="1990-04-12",
        )

        # ---- Demo locations and cars (create only if none exist) ----
        if not store.locations:
            leeds = store.create_location({
                "name": "Leeds City", "address_line1": "10 Wellington Street", "city": "Leeds",
                "county": "West Yorkshire", "postcode": "LS1 4DL", "phone_number": "0113 000 0000",
            })
            york = store.create_location({
                "name": "York Station", "address_line1": "Station Road", "city": "York",
                "county": "North Yorkshire", "postcode": "YO24 1AB", "phone_number": "01904 000 000",
            })
        else:
            leeds = york = next(iter(store.locations))

        if not store.cars:
            store.create_car({
                "location_id": leeds, "make": "Ford", "model": "Fiesta", "year": 2022,
                "license_plate": "LS22 FFA", "colour": "Blue", "rental_rate": 35, "status": "available",
            })
            store.create_car({
                "location_id": leeds, "make": "Volkswagen", "model": "Golf", "year": 2023,
                "license_plate": "LS23 VWG", "colour": "Grey", "rental_rate": 50, "status": "available",
            })
            store.create_car({
                "location_id": york, "make": "BMW", "model": "3 Series", "year": 2021,
                "license_plate": "YO21 BMW", "colour": "Black", "rental_rate": 85, "status": "maintenance",
            })

        store.save()

        print("✅ Seed complete.")
        print("🔑 Admin login:     admin@example.com / Admin123")
        print("👤 Customer login:  customer@example.com / Customer123")


if __name__ == "__main__":
    main()
