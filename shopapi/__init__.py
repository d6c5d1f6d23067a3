import os
from typing import Any, Dict, Optional

from flask import Flask

from dotenv import load_dotenv

from .config import config_by_name
from .utils.logging import setup_logging
from .database import db

load_dotenv()

def create_app(config_name: Optional[str] = None, test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Application factory.
    Keeps startup side-effects isolated and testable.
    """
    config_name = config_name or os.getenv("FLASK_ENV", "default")
    app = Flask(__name__, instance_relative_config=True)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    app.config.from_object(config_by_name[config_name])
    app.config.from_envvar("SHOPAPI_SETTINGS", silent=True)
    if test_config:
        app.config.update(test_config)
    config_by_name[config_name].init_app(app)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    setup_logging(app)

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------
    db.init_app(app)

    with app.app_context():
        # ------------------------------------------------------------------
        # Schema & defaults
        # ------------------------------------------------------------------
        from .database.schema import schema
        db.checkDB(schema)

        from .models import set_defaults
        from .database import default_list
        with db.transaction() as tx:
            set_defaults(tx, default_list)

        from .blueprints import init_blueprints
        init_blueprints(app)
        from .utils.error_handlers import register_error_handlers
        register_error_handlers(app)

        app.logger.info("ShopAPI %s server ready (database: %s)", config_name, db.backend)

    return app
