"""Footprint ledger: one footprint per (user, day).

Submissions derive any emission fields the caller left out; explicit numeric
values are kept verbatim (manual override). Updates always recompute all four
emission fields from the merged inputs.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from dates import normalize_day, utcnow
from emissions import derive_emissions, normalize_inputs
from errors import DuplicateSubmission, InvalidRequest, NotFound
from extensions import db
from models_footprints import Footprint


log = logging.getLogger(__name__)

# footprint column -> key in derive_emissions() output
EMISSION_FIELDS = {
    "travel_emissions": "travel",
    "food_emissions": "food",
    "energy_emissions": "energy",
    "total_score": "total",
}

EDITABLE_FIELDS = (
    "date",
    "vehicle_type",
    "distance_daily",
    "diet_type",
    "electricity_usage",
    "gas_usage",
)


def _norm_user(user: Any) -> str:
    if not isinstance(user, str):
        return ""
    return user.strip().lower()


def _explicit_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _existing_for_day(user: str, day: str) -> Optional[Footprint]:
    return Footprint.query.filter_by(user=user, date=day).first()


def _commit_or_duplicate(user: str, day: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("Duplicate footprint rejected by constraint user=%s date=%s", user, day)
        raise DuplicateSubmission(f"Footprint already submitted for {day}")


def submit(fields: Mapping[str, Any]) -> Footprint:
    fields = fields or {}
    user = _norm_user(fields.get("user"))
    if not user:
        raise InvalidRequest("user is required")
    day = normalize_day(fields.get("date"))

    if _existing_for_day(user, day):
        raise DuplicateSubmission(f"Footprint already submitted for {day}")

    inputs = normalize_inputs(fields)
    derived = derive_emissions(inputs)

    record = Footprint(user=user, date=day, **inputs)
    for column, key in EMISSION_FIELDS.items():
        explicit = _explicit_number(fields.get(column))
        setattr(record, column, explicit if explicit is not None else derived[key])

    db.session.add(record)
    _commit_or_duplicate(user, day)
    log.info("Footprint saved user=%s date=%s total=%.2f", user, day, record.total_score)
    return record


def get(record_id) -> Footprint:
    record = db.session.get(Footprint, record_id)
    if record is None:
        raise NotFound("Footprint not found")
    return record


def update(record_id, fields: Mapping[str, Any]) -> Footprint:
    record = get(record_id)
    fields = fields or {}

    merged = {key: getattr(record, key) for key in EDITABLE_FIELDS}
    for key in EDITABLE_FIELDS:
        if key in fields:
            merged[key] = fields[key]

    day = normalize_day(merged["date"])
    inputs = normalize_inputs(merged)
    derived = derive_emissions(inputs)

    record.date = day
    for key, value in inputs.items():
        setattr(record, key, value)
    for column, key in EMISSION_FIELDS.items():
        setattr(record, column, derived[key])
    record.updated_at = utcnow()

    _commit_or_duplicate(record.user, day)
    return record


def find_previous(user: str, before_date) -> Optional[Footprint]:
    """Most recent footprint strictly before `before_date`, or None."""
    before = normalize_day(before_date)
    return (
        Footprint.query.filter(Footprint.user == _norm_user(user))
        .filter(Footprint.date < before)
        .order_by(Footprint.date.desc())
        .first()
    )


def list_for_user(user: str) -> list:
    return Footprint.query.filter_by(user=_norm_user(user)).order_by(Footprint.id.asc()).all()


def list_all() -> list:
    return Footprint.query.order_by(Footprint.id.asc()).all()


def delete(record_id) -> bool:
    """Remove a footprint. Deleting a missing id is not an error."""
    record = db.session.get(Footprint, record_id)
    if record is None:
        return False
    db.session.delete(record)
    db.session.commit()
    return True
