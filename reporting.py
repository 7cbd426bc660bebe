"""Organisation-wide credit and footprint summary.

Two independent reads (wallets, per-user footprint aggregates) are outer
joined here by user. Defaults for the missing side:
- no wallet:     credits 0, lastUpdated None
- no footprints: averageScore None, entries 0

organizationAverage is the mean of per-user averages (every user weighs the
same regardless of how often they submit), 0 when nobody has records.
"""

from __future__ import annotations

from sqlalchemy import func

from extensions import db
from models_footprints import Footprint
from models_wallets import Wallet


def _footprint_aggregates() -> list:
    rows = (
        db.session.query(
            Footprint.user,
            func.avg(Footprint.total_score),
            func.count(Footprint.id),
        )
        .group_by(Footprint.user)
        .order_by(Footprint.user.asc())
        .all()
    )
    return [(r[0], float(r[1]) if r[1] is not None else None, int(r[2] or 0)) for r in rows]


def _outer_join(wallets: list, aggregates: list) -> list:
    stats = {user: (avg, count) for user, avg, count in aggregates}

    employees = []
    seen = set()
    for w in wallets:
        avg, count = stats.get(w.user, (None, 0))
        employees.append({
            "user": w.user,
            "credits": int(w.credits or 0),
            "lastUpdated": w.updated_at.isoformat() if w.updated_at else None,
            "averageScore": avg,
            "entries": count,
        })
        seen.add(w.user)

    for user, avg, count in aggregates:
        if user in seen:
            continue
        employees.append({
            "user": user,
            "credits": 0,
            "lastUpdated": None,
            "averageScore": avg,
            "entries": count,
        })
    return employees


def rank_by_credits(employees: list) -> list:
    # sorted() is stable: ties keep input order.
    ordered = sorted(employees, key=lambda e: e["credits"], reverse=True)
    return [{**e, "rank": i + 1} for i, e in enumerate(ordered)]


def organization_summary() -> dict:
    wallets = Wallet.query.order_by(Wallet.id.asc()).all()
    employees = _outer_join(wallets, _footprint_aggregates())

    averages = [e["averageScore"] for e in employees if e["averageScore"] is not None]
    org_average = sum(averages) / len(averages) if averages else 0

    return {
        "totalEmployees": len(employees),
        "totalCredits": sum(e["credits"] for e in employees),
        "organizationAverage": org_average,
        "employees": employees,
        "ranking": rank_by_credits(employees),
    }
