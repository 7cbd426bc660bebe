#!/usr/bin/env python3
"""Recompute every wallet balance from its credit ledger.

The ledger is the source of truth; run after a crash or a manual DB edit
(e.g., from a scheduler or by hand):
  python scripts/reconcile_wallets.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models_wallets import CreditTransaction, Wallet  # noqa: E402
import wallet_ledger  # noqa: E402


def main():
    checked = fixed = 0

    app = create_app()
    with app.app_context():
        users = {w.user for w in Wallet.query.all()}
        users.update(u for (u,) in db.session.query(CreditTransaction.user).distinct())

        for user in sorted(users):
            checked += 1
            before = wallet_ledger.get_wallet(user)
            before_credits = int(before.credits or 0) if before else None
            after = wallet_ledger.reconcile_wallet(user)
            if before_credits != int(after.credits or 0):
                fixed += 1

    print({"ok": True, "checked": checked, "fixed": fixed})


if __name__ == "__main__":
    main()
