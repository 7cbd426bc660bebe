"""Credit policy: how many credits a daily score earns.

Base credits by absolute score (lower is better):
    score < 10        -> 5
    10 <= score <= 20 -> 3
    score > 20        -> 1

Improvement bonus: +2 when a previous score exists and the new score is
strictly lower. The previous score is the user's last submission before this
date, however long ago.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from errors import InvalidScore


# (upper bound, inclusive?, credits), checked in order
BASE_TIERS = (
    (10.0, False, 5),
    (20.0, True, 3),
)
BASE_FLOOR = 1
IMPROVEMENT_BONUS = 2


@dataclass(frozen=True)
class CreditAward:
    base: int
    bonus: int

    @property
    def total(self) -> int:
        return self.base + self.bonus

    def to_dict(self):
        return {"base": self.base, "bonus": self.bonus, "total": self.total}


def _finite(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def base_credits(score: float) -> int:
    for bound, inclusive, credits in BASE_TIERS:
        if score < bound or (inclusive and score == bound):
            return credits
    return BASE_FLOOR


def award(score, previous_score: Optional[float] = None) -> CreditAward:
    if not _finite(score):
        raise InvalidScore(f"Score must be a finite number, got {score!r}")

    bonus = 0
    if _finite(previous_score) and score < previous_score:
        bonus = IMPROVEMENT_BONUS

    return CreditAward(base=base_credits(score), bonus=bonus)
