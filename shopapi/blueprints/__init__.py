"""
Central registry for all blueprints.
Import this from shopapi/__init__.py → one function call registers everything.
"""
from flask import Flask, Blueprint, request
from shopapi.utils.exceptions import ValidationError
from shopapi.utils.logging import get_logger
from typing import Any, Dict, Iterable, List, Tuple, Optional

log = get_logger(__name__)

BLUEPRINTS: List[Tuple[Blueprint, Optional[str]]] = []


def register_blueprint(bp: Blueprint, *, url_prefix: Optional[str] = None) -> None:
    """Helper used inside each blueprint's __init__.py"""
    BLUEPRINTS.append((bp, url_prefix))

def init_blueprints(app: Flask) -> None:
    """Call this once from the app factory"""
    for bp, prefix in BLUEPRINTS:
        app.register_blueprint(bp, url_prefix=prefix)
        log.info("Blueprint registered: %s → %s", bp.name, prefix or "/")
    log.info("All %d blueprints registered", len(BLUEPRINTS))


def json_body(*required: str, allowed: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Request JSON as a dict, failing on missing required keys or, when `allowed` is given, unknown ones."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    missing = [key for key in required if data.get(key) in (None, "")]
    if missing:
        raise ValidationError("Missing required fields", fields=missing)
    if allowed is not None:
        unknown = sorted(set(data) - set(allowed))
        if unknown:
            raise ValidationError("Unknown fields", fields=unknown)
    return data


def query_flag(name: str) -> bool:
    """Boolean query parameter: 1/true/yes (any case) is True, anything else False."""
    return (request.args.get(name) or "").lower() in ("1", "true", "yes")

from .auth import *
from .orders import *
from .products import *
from .categories import *
from .suppliers import *
from .customers import *
from .reviews import *
