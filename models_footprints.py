"""Footprint models.

One row per (user, day). The unique constraint is the source of truth for
"already submitted today"; application pre-checks only exist to return a
friendlier error.
"""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, UniqueConstraint

from dates import utcnow
from extensions import db


class Footprint(db.Model):
    __tablename__ = "footprints"

    id = Column(Integer, primary_key=True)
    user = Column(String(255), nullable=False, index=True)
    # YYYY-MM-DD (UTC); string ordering == date ordering
    date = Column(String(10), nullable=False)

    vehicle_type = Column(String(40), nullable=False, default="")
    distance_daily = Column(Float, nullable=False, default=0.0)
    diet_type = Column(String(40), nullable=False, default="")
    electricity_usage = Column(Float, nullable=False, default=0.0)  # kWh / month
    gas_usage = Column(Float, nullable=False, default=0.0)  # kWh / month

    travel_emissions = Column(Float, nullable=False, default=0.0)
    food_emissions = Column(Float, nullable=False, default=0.0)
    energy_emissions = Column(Float, nullable=False, default=0.0)
    total_score = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user", "date", name="uq_footprint_user_date"),
        Index("idx_footprints_user_date", "user", "date"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user": self.user,
            "date": self.date,
            "vehicle_type": self.vehicle_type,
            "distance_daily": self.distance_daily,
            "diet_type": self.diet_type,
            "electricity_usage": self.electricity_usage,
            "gas_usage": self.gas_usage,
            "travel_emissions": self.travel_emissions,
            "food_emissions": self.food_emissions,
            "energy_emissions": self.energy_emissions,
            "total_score": self.total_score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
