"""Wallet and credit APIs.

Routes:
- GET  /api/wallet?user=                     balance, today's credits, last 10 transactions
- GET  /api/transactions?user=&limit=25      ledger, newest first
- POST /api/credits/award                    manual / back-fill award (admin)
"""

from flask import Blueprint, jsonify, request

import credit_awards
import wallet_ledger
from admin_reports import require_admin
from auth import current_user
from dates import utc_today
from errors import InvalidRequest, json_object
from extensions import limiter


wallets_api = Blueprint("wallets_api", __name__)

RECENT_TX_COUNT = 10


def _required_user(payload=None) -> str:
    user = current_user(payload)
    if not user:
        raise InvalidRequest("user is required")
    return user


@wallets_api.get("/api/wallet")
def get_wallet():
    user = _required_user()
    wallet = wallet_ledger.get_wallet(user)
    return jsonify({
        "success": True,
        # Read path never creates a wallet; report the zero state instead.
        "wallet": wallet.to_dict() if wallet else {"user": user, "credits": 0, "created_at": None, "updated_at": None},
        "todayCredits": wallet_ledger.credits_on_date(user, utc_today()),
        "recentTransactions": [t.to_dict() for t in wallet_ledger.transactions_for_user(user, RECENT_TX_COUNT)],
    })


@wallets_api.get("/api/transactions")
def get_transactions():
    user = _required_user()
    limit = request.args.get("limit", wallet_ledger.DEFAULT_TX_LIMIT)
    txs = wallet_ledger.transactions_for_user(user, limit)
    return jsonify({"success": True, "transactions": [t.to_dict() for t in txs]})


@wallets_api.post("/api/credits/award")
@limiter.limit("20 per minute")
def manual_award():
    require_admin()
    data = json_object()
    # Admin names the target user explicitly; the admin's own identity is irrelevant.
    summary = credit_awards.award_for_footprint(data.get("user"), data.get("score"), data.get("date"))
    return jsonify({"success": True, **summary})
