"""Shared Flask extension instances.

Every model and blueprint imports `db` from here so nothing has to import the
app module (prevents circular imports).
"""

from flask import request
from flask_limiter import Limiter
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def get_client_ip() -> str:
    """Return the best-effort client IP.

    After ProxyFix, request.access_route[0] should be the real client IP.
    Falls back to request.remote_addr for local development.
    """
    try:
        if request.access_route:
            return request.access_route[0]
    except Exception:
        pass
    return request.remote_addr or "0.0.0.0"


# Storage is configured through RATELIMIT_STORAGE_URI in create_app().
limiter = Limiter(
    get_client_ip,
    default_limits=["200 per day", "50 per hour"],
)
