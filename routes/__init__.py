"""
Flask route blueprints for HY-eat.

- api: waiting data and health
- tickets: balance, ticket purchase/cancel/activate/use

Each blueprint is registered with the Flask app in create_app().
"""

from .api import api_bp
from .tickets import tickets_bp

__all__ = [
    "api_bp",
    "tickets_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api_bp)
    app.register_blueprint(tickets_bp)
