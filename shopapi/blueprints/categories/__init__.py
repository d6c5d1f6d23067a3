from flask import Blueprint
from shopapi.blueprints import register_blueprint

bp = Blueprint('categories', __name__)

from . import routes

register_blueprint(bp, url_prefix='/api/categories')
