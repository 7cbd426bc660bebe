from dotenv import load_dotenv
load_dotenv()
import logging
import os
from datetime import timedelta

import redis
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError
from werkzeug.middleware.proxy_fix import ProxyFix

from dates import utcnow
from errors import install_error_handlers
from extensions import db, limiter


def _is_production() -> bool:
    return bool(os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production")


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        if os.getenv("RENDER") == "true":
            raise RuntimeError("DATABASE_URL missing on Render; refusing to use SQLite.")
        url = "sqlite:///carbon.db"
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _ensure_columns(table_name: str, columns_sql: dict) -> list:
    """Add columns missing from databases created before they existed. Returns the columns touched."""
    dialect = db.engine.dialect.name

    if dialect == "sqlite":
        added = []
        existing = [r[1] for r in db.session.execute(text(f"PRAGMA table_info({table_name})")).fetchall()]
        for col, col_sql in columns_sql.items():
            if col not in existing:
                db.session.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {col_sql}"))
                added.append(col)
        db.session.commit()
        return added

    if dialect in ("postgresql", "postgres"):
        for _col, col_sql in columns_sql.items():
            db.session.execute(text(f"ALTER TABLE {table_name} ADD COLUMN IF NOT EXISTS {col_sql}"))
        db.session.commit()
        return list(columns_sql)

    return []


def _upgrade_schema(app: Flask) -> None:
    try:
        added = _ensure_columns("credit_transactions", {"award_date": "award_date VARCHAR(10)"})
        if "award_date" not in added:
            return
        db.session.execute(text(
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_credit_tx_user_day_kind "
            "ON credit_transactions (\"user\", award_date, kind)"
        ))
        db.session.commit()
    except (OperationalError, ProgrammingError):
        db.session.rollback()
        app.logger.warning("Schema upgrade skipped; run it manually", exc_info=True)


def _default_config() -> dict:
    secret_key = os.getenv("SECRET_KEY") or os.getenv("FLASK_SECRET_KEY") or "dev-secret-key-change-me"
    db_url = _database_url()

    engine_options = {}
    if not db_url.startswith("sqlite"):
        engine_options = {
            "pool_recycle": 300,
            "pool_pre_ping": True,
            # Bounded wait for a connection; surfaces as StorageUnavailable.
            "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "10")),
        }

    return {
        "SECRET_KEY": secret_key,
        "SQLALCHEMY_DATABASE_URI": db_url,
        "SQLALCHEMY_ENGINE_OPTIONS": engine_options,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": os.getenv("SESSION_COOKIE_SAMESITE", "Lax"),
        "SESSION_COOKIE_SECURE": _is_production(),
        "PERMANENT_SESSION_LIFETIME": timedelta(hours=int(os.getenv("SESSION_LIFETIME_HOURS", "12"))),
        "RATELIMIT_STORAGE_URI": os.getenv("RATE_LIMIT_STORAGE_URL", "memory://"),
        "CORS_ORIGINS": [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:8081").split(",") if o.strip()],
        "ADMIN_REPORTS_KEY": os.getenv("ADMIN_REPORTS_KEY") or os.getenv("ADMIN_API_KEY", ""),
        "BCRYPT_LOG_ROUNDS": int(os.getenv("BCRYPT_LOG_ROUNDS", "12")),
        "USE_SERVER_SIDE_SESSIONS": os.getenv("USE_SERVER_SIDE_SESSIONS", "0") == "1",
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
    }


def _init_server_side_sessions(app: Flask) -> None:
    """Redis-backed sessions (true revocation across instances)."""
    from flask_session import Session

    redis_url = os.getenv("SESSION_REDIS_URL") or os.getenv("REDIS_URL")
    if not redis_url:
        raise RuntimeError("USE_SERVER_SIDE_SESSIONS=1 but SESSION_REDIS_URL/REDIS_URL is not set")
    app.config["SESSION_TYPE"] = "redis"
    app.config["SESSION_REDIS"] = redis.from_url(redis_url)
    app.config["SESSION_USE_SIGNER"] = True
    app.config["SESSION_PERMANENT"] = True
    app.config["SESSION_KEY_PREFIX"] = os.getenv("SESSION_KEY_PREFIX", "carbon:")
    Session(app)


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.update(_default_config())
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=getattr(logging, app.config["LOG_LEVEL"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Enforce a strong SECRET_KEY in production (do not allow dev fallbacks).
    if _is_production() and app.config["SECRET_KEY"].startswith("dev-secret-key-change"):
        raise RuntimeError("SECRET_KEY must be set to a strong random value in production (Render/FLASK_ENV=production).")

    if app.config["USE_SERVER_SIDE_SESSIONS"]:
        _init_server_side_sessions(app)

    # Trust a single proxy hop (Render's edge proxy)
    if _is_production():
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    db.init_app(app)
    CORS(app, origins=app.config["CORS_ORIGINS"], supports_credentials=True)
    limiter.init_app(app)
    install_error_handlers(app)

    @app.after_request
    def add_default_headers(resp):
        resp.headers.setdefault("Cache-Control", "no-store")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        return resp

    @app.get("/api/health")
    def health_check():
        # Storage errors are turned into a 503 envelope by the error handlers.
        db.session.execute(text("SELECT 1"))
        return jsonify({
            "success": True,
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "database": "connected",
        })

    # Models must be imported before create_all().
    from models_footprints import Footprint  # noqa: F401
    from models_users import User  # noqa: F401
    from models_wallets import CreditTransaction, Wallet  # noqa: F401

    from admin_reports import admin_reports
    from auth import auth_api
    from footprints import footprints_api
    from wallets import wallets_api

    app.register_blueprint(auth_api)
    app.register_blueprint(footprints_api)
    app.register_blueprint(wallets_api)
    app.register_blueprint(admin_reports)

    with app.app_context():
        db.create_all()
        _upgrade_schema(app)

    app.logger.info("CarbonCheck credits service ready (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://", 1)[0])
    return app


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_ENV", "development") == "development"
    create_app().run(host="0.0.0.0", port=port, debug=debug)
