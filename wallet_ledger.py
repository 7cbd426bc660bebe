"""Wallet ledger: per-user credit balance + append-only transaction history.

Rules:
- Wallets are created lazily with an upsert on the unique `wallets.user`, so
  two concurrent first awards can never create two wallets.
- An award appends its ledger rows and bumps the balance with a single
  `credits = credits + n` UPDATE inside the same DB transaction. There is no
  read-modify-write on the balance.
- The ledger is the source of truth. If a balance ever drifts,
  reconcile_wallet() recomputes it from the transactions.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from dates import utc_day_bounds, utcnow
from errors import DuplicateSubmission, InvalidRequest, InvalidUser
from extensions import db
from models_wallets import CreditTransaction, TX_KIND_BONUS, TX_KIND_EARN, Wallet


log = logging.getLogger(__name__)

DEFAULT_TX_LIMIT = 25
MAX_TX_LIMIT = 500


def _norm_user(user) -> str:
    if not isinstance(user, str):
        return ""
    return user.strip().lower()


def _require_user(user) -> str:
    user = _norm_user(user)
    if not user:
        raise InvalidUser()
    return user


def _upsert_wallet(user: str) -> None:
    """INSERT the wallet row unless it already exists. Does not commit."""
    now = utcnow()
    values = {"user": user, "credits": 0, "created_at": now, "updated_at": now}
    dialect = db.engine.dialect.name

    if dialect == "sqlite":
        stmt = sqlite_insert(Wallet).values(**values).on_conflict_do_nothing(index_elements=["user"])
        db.session.execute(stmt)
        return

    if dialect in ("postgresql", "postgres"):
        stmt = pg_insert(Wallet).values(**values).on_conflict_do_nothing(index_elements=["user"])
        db.session.execute(stmt)
        return

    # Other backends: rely on the unique constraint inside a savepoint.
    try:
        with db.session.begin_nested():
            db.session.execute(insert(Wallet).values(**values))
    except IntegrityError:
        pass


def get_wallet(user) -> Optional[Wallet]:
    user = _norm_user(user)
    if not user:
        return None
    return Wallet.query.filter_by(user=user).first()


def ensure_wallet(user) -> Wallet:
    user = _require_user(user)
    _upsert_wallet(user)
    db.session.commit()
    return Wallet.query.filter_by(user=user).one()


def award_exists(user, award_date) -> bool:
    return (
        db.session.query(CreditTransaction.id)
        .filter(CreditTransaction.user == _norm_user(user))
        .filter(CreditTransaction.award_date == award_date)
        .filter(CreditTransaction.kind == TX_KIND_EARN)
        .first()
        is not None
    )


def apply_award(user, base_amount: int, bonus_amount: int, reason_base: str, reason_bonus: str,
                award_date: Optional[str] = None):
    """Append earn (+ optional bonus) rows and increment the balance atomically.

    With `award_date` set, at most one award per (user, award_date) commits;
    a second one raises DuplicateSubmission and changes nothing.

    Returns (wallet, [transactions]).
    """
    user = _require_user(user)
    base_amount = int(base_amount)
    bonus_amount = int(bonus_amount)
    if base_amount < 0 or bonus_amount < 0:
        raise InvalidRequest("award amounts must be >= 0")

    if award_date is not None and award_exists(user, award_date):
        raise DuplicateSubmission(f"Credits already awarded for {award_date}")

    now = utcnow()
    try:
        _upsert_wallet(user)

        txs = [CreditTransaction(user=user, amount=base_amount, kind=TX_KIND_EARN, reason=reason_base,
                                 award_date=award_date, created_at=now)]
        if bonus_amount > 0:
            txs.append(
                CreditTransaction(user=user, amount=bonus_amount, kind=TX_KIND_BONUS, reason=reason_bonus,
                                  award_date=award_date, created_at=now)
            )
        db.session.add_all(txs)
        db.session.flush()

        db.session.execute(
            update(Wallet)
            .where(Wallet.user == user)
            .values(credits=func.coalesce(Wallet.credits, 0) + (base_amount + bonus_amount), updated_at=now)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("Duplicate award rejected by constraint user=%s date=%s", user, award_date)
        raise DuplicateSubmission(f"Credits already awarded for {award_date}")
    except Exception:
        db.session.rollback()
        raise

    wallet = Wallet.query.filter_by(user=user).one()
    db.session.refresh(wallet)
    log.info(
        "Credits applied user=%s base=%s bonus=%s balance=%s",
        user, base_amount, bonus_amount, wallet.credits,
    )
    return wallet, txs


def transactions_for_user(user, limit=DEFAULT_TX_LIMIT) -> list:
    """Most recent first, capped at `limit`."""
    user = _norm_user(user)
    if limit is None:
        limit = DEFAULT_TX_LIMIT
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise InvalidRequest("limit must be an integer")
    if limit < 1:
        raise InvalidRequest("limit must be >= 1")
    limit = min(limit, MAX_TX_LIMIT)

    return (
        CreditTransaction.query.filter(CreditTransaction.user == user)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        .limit(limit)
        .all()
    )


def transactions_on_date(user, day) -> list:
    """All transactions whose timestamp falls inside the UTC day."""
    day_start, day_end = utc_day_bounds(day)
    return (
        CreditTransaction.query.filter(CreditTransaction.user == _norm_user(user))
        .filter(CreditTransaction.created_at >= day_start)
        .filter(CreditTransaction.created_at < day_end)
        .order_by(CreditTransaction.created_at.asc(), CreditTransaction.id.asc())
        .all()
    )


def credits_on_date(user, day) -> int:
    return sum(int(tx.amount or 0) for tx in transactions_on_date(user, day))


def ledger_balance(user) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(CreditTransaction.amount), 0))
        .filter(CreditTransaction.user == _norm_user(user))
        .scalar()
    )
    return int(total or 0)


def reconcile_wallet(user) -> Wallet:
    """Reset the balance to the ledger sum. Ledger wins.

    The wallet row is locked first and the sum is computed inside the UPDATE
    itself, so an award committing meanwhile is never overwritten.
    """
    user = _require_user(user)
    try:
        _upsert_wallet(user)
        before = (
            db.session.query(Wallet.credits)
            .filter(Wallet.user == user)
            .with_for_update()
            .scalar()
        )
        ledger_sum = (
            select(func.coalesce(func.sum(CreditTransaction.amount), 0))
            .where(CreditTransaction.user == user)
            .scalar_subquery()
        )
        db.session.execute(
            update(Wallet)
            .where(Wallet.user == user)
            .values(credits=ledger_sum, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    wallet = Wallet.query.filter_by(user=user).populate_existing().one()
    if int(before or 0) != int(wallet.credits or 0):
        log.warning("Wallet drift fixed user=%s balance=%s ledger=%s", user, before, wallet.credits)
    return wallet
