"""
reset_data.py
-------------
Clear every table (identities, customers, locations, cars, rentals,
insurance, payments) from the local data file.

Usage:
    $ python reset_data.py

Repopulate demo data afterwards with:
    $ python seeds.py
"""

from carhire.config import load_config
from carhire.models.store import Store


def main():
    store = Store.instance(load_config()["DATA_PATH"])
    store.clear()

    print(f"✅ {store.path} has been successfully cleared.")
    print("💡 Tip: Run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()
