"""Admin reporting APIs.

Admin access rules:
- Key login stores an 'admin_reports' flag in the flask session.
- Key comes from ADMIN_REPORTS_KEY (fallback to ADMIN_API_KEY).

Routes:
- POST /api/admin/login
- POST /api/admin/logout
- GET  /api/admin/summary
- POST /api/admin/wallets/<user>/reconcile
"""

import hmac

from flask import Blueprint, current_app, jsonify, request, session as flask_session

import reporting
import wallet_ledger
from errors import Unauthorized, json_object
from extensions import limiter


admin_reports = Blueprint("admin_reports", __name__)


def _admin_key() -> str:
    return (current_app.config.get("ADMIN_REPORTS_KEY") or "").strip()


def is_admin() -> bool:
    return bool(flask_session.get("admin_reports"))


def require_admin() -> None:
    if not is_admin():
        raise Unauthorized()


@admin_reports.post("/api/admin/login")
@limiter.limit("10 per minute")
def admin_login():
    data = json_object()
    key = (data.get("key") or request.form.get("key") or "").strip()
    expected = _admin_key()
    if key and expected and hmac.compare_digest(key, expected):
        flask_session["admin_reports"] = True
        return jsonify({"success": True})
    current_app.logger.warning("Admin login failed")
    return jsonify({"success": False, "error": "unauthorized", "message": "Invalid key"}), 401


@admin_reports.post("/api/admin/logout")
def admin_logout():
    flask_session.pop("admin_reports", None)
    return jsonify({"success": True})


@admin_reports.get("/api/admin/summary")
def admin_summary():
    require_admin()
    return jsonify({"success": True, **reporting.organization_summary()})


@admin_reports.post("/api/admin/wallets/<path:user>/reconcile")
def admin_reconcile_wallet(user: str):
    require_admin()
    wallet = wallet_ledger.reconcile_wallet(user)
    return jsonify({"success": True, "wallet": wallet.to_dict(), "ledger_balance": wallet_ledger.ledger_balance(user)})
