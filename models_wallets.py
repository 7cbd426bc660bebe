"""Credit wallet models.

- Wallet: one row per user, created lazily on the first award.
- CreditTransaction: append-only ledger. Nothing updates or deletes rows;
  sum(amount) per user must equal wallets.credits. Rows keyed by award_date
  are unique per (user, award_date, kind).
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint

from dates import utcnow
from extensions import db


TX_KIND_EARN = "earn"
TX_KIND_BONUS = "bonus"


class Wallet(db.Model):
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True)
    user = Column(String(255), nullable=False, unique=True)
    # Whole-number credits (no Float rounding drift).
    credits = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "user": self.user,
            "credits": int(self.credits or 0),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CreditTransaction(db.Model):
    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True)
    user = Column(String(255), nullable=False, index=True)
    amount = Column(Integer, nullable=False, default=0)
    kind = Column(String(10), nullable=False, default=TX_KIND_EARN)
    reason = Column(String(500), nullable=False, default="")
    # YYYY-MM-DD the award is for; NULL for unkeyed manual adjustments.
    award_date = Column(String(10), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_credit_tx_user_created", "user", "created_at"),
        # at most one earn row and one bonus row per user per day
        UniqueConstraint("user", "award_date", "kind", name="uq_credit_tx_user_day_kind"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user,
            "amount": int(self.amount or 0),
            "kind": self.kind,
            "reason": self.reason,
            "award_date": self.award_date,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
