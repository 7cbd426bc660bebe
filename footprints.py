"""Footprint APIs.

Routes:
- POST   /api/footprints          submit today's (or `date`'s) footprint, awards credits
- GET    /api/footprints?user=    list (all users when `user` is omitted)
- PUT    /api/footprints/<id>     update inputs, emissions are recomputed
- POST   /api/footprints/<id>     same as PUT (hosts/proxies that mishandle PUT)
- DELETE /api/footprints/<id>     idempotent delete

Submitting records the footprint first, then runs the award. If the award
fails the footprint stays saved and the response says so (202); the award can
be re-applied through POST /api/credits/award; a day that was in fact
already awarded is rejected there with 409.
"""

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import OperationalError

import credit_awards
import footprint_ledger
from auth import current_user
from errors import CarbonCheckError, StorageUnavailable, json_object
from extensions import db, limiter


footprints_api = Blueprint("footprints_api", __name__)


def _award_pending(record, err: CarbonCheckError):
    current_app.logger.error(
        "Award pending for footprint id=%s user=%s: %s", record.id, record.user, err.message
    )
    return jsonify({
        "success": True,
        "message": "Footprint saved; credit award pending",
        "footprint": record.to_dict(),
        "credits": None,
        "award_error": err.to_dict(),
    }), 202


@footprints_api.post("/api/footprints")
@limiter.limit("10 per minute")
def submit_footprint():
    data = json_object()
    fields = {**data, "user": current_user(data)}

    record = footprint_ledger.submit(fields)

    try:
        credits = credit_awards.award_for_footprint(record.user, record.total_score, record.date)
    except OperationalError:
        db.session.rollback()
        return _award_pending(record, StorageUnavailable())
    except CarbonCheckError as e:
        return _award_pending(record, e)

    return jsonify({
        "success": True,
        "message": "Footprint saved successfully",
        "footprint": record.to_dict(),
        "credits": credits,
    })


@footprints_api.get("/api/footprints")
def list_footprints():
    user = (request.args.get("user") or "").strip()
    records = footprint_ledger.list_for_user(user) if user else footprint_ledger.list_all()
    return jsonify({"success": True, "footprints": [r.to_dict() for r in records]})


@footprints_api.put("/api/footprints/<int:record_id>")
def update_footprint(record_id: int):
    data = json_object()
    record = footprint_ledger.update(record_id, data)
    return jsonify({"success": True, "footprint": record.to_dict()})


@footprints_api.post("/api/footprints/<int:record_id>")
def update_footprint_post(record_id: int):
    """POST variant of update for hosts/proxies that mishandle PUT."""
    return update_footprint(record_id)


@footprints_api.delete("/api/footprints/<int:record_id>")
def delete_footprint(record_id: int):
    deleted = footprint_ledger.delete(record_id)
    return jsonify({"success": True, "deleted": deleted, "message": "Footprint deleted successfully"})
