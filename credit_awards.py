"""Award orchestration: score -> credits -> wallet.

Stateless. The footprint submission route and the manual award route both go
through award_for_footprint() so identical inputs always produce identical
ledger effects. Each (user, day) is awarded at most once; a repeat raises
DuplicateSubmission. Errors from the ledgers propagate unchanged.
"""

from __future__ import annotations

import logging
import math

import credit_policy
import footprint_ledger
import wallet_ledger
from dates import normalize_day
from errors import InvalidRequest


log = logging.getLogger(__name__)


def _coerce_score(score) -> float:
    if isinstance(score, bool) or score is None:
        raise InvalidRequest("score must be a finite number")
    try:
        value = float(score)
    except (TypeError, ValueError, OverflowError):
        raise InvalidRequest("score must be a finite number")
    if not math.isfinite(value):
        raise InvalidRequest("score must be a finite number")
    return value


def _fmt(value) -> str:
    return "n/a" if value is None else f"{value:.1f}"


def award_for_footprint(user, score, date=None) -> dict:
    user = user.strip().lower() if isinstance(user, str) else ""
    if not user:
        raise InvalidRequest("user is required")
    score = _coerce_score(score)
    day = normalize_day(date)

    previous = footprint_ledger.find_previous(user, day)
    previous_score = previous.total_score if previous is not None else None

    result = credit_policy.award(score, previous_score)

    reason_base = f"Daily footprint {day}: score {_fmt(score)}"
    reason_bonus = f"Improvement bonus: score {_fmt(score)} below previous {_fmt(previous_score)}"

    wallet, txs = wallet_ledger.apply_award(
        user, result.base, result.bonus, reason_base, reason_bonus, award_date=day,
    )

    return {
        "baseCredits": result.base,
        "bonusCredits": result.bonus,
        "totalAwarded": result.total,
        "previousScore": previous_score,
        "wallet": wallet.to_dict(),
        "transactions": [tx.to_dict() for tx in txs],
    }
