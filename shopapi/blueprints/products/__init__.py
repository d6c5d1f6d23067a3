from flask import Blueprint
from shopapi.blueprints import register_blueprint

bp = Blueprint('products', __name__)

from . import routes

register_blueprint(bp, url_prefix='/api/products')
