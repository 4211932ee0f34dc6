import logging

from flask import Flask

from .config import load_config
from .controllers.admin import bp as admin_bp
from .controllers.auth import bp as auth_bp
from .controllers.booking import bp as booking_bp
from .controllers.profile import bp as profile_bp
from .controllers.views import bp as views_bp
from .models.store import Store
from .utils.decorators import current_context
from .utils.filters import fmt_iso_local, money


def create_app(config=None, store=None):
    """
    Build the Flask app. `config` overrides values read from the environment;
    `store` replaces the global Store (tests pass an isolated one).
    """
    app = Flask(__name__, template_folder="templates")
    app.config.update(load_config())
    app.config.update(config or {})

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if store is not None:
        Store.use(store)
    else:
        Store.instance(app.config["DATA_PATH"])  # load data.pkl or start empty

    app.register_blueprint(auth_bp)
    app.register_blueprint(views_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(admin_bp)
    app.jinja_env.filters["fmt_iso_local"] = fmt_iso_local
    app.jinja_env.filters["money"] = money
    app.context_processor(lambda: {"ctx": current_context()})

    return app
