from datetime import timedelta

import pytest

import wallet_ledger
from dates import utc_today, utcnow
from errors import DuplicateSubmission, InvalidRequest, InvalidUser
from extensions import db
from models_wallets import CreditTransaction, TX_KIND_BONUS, TX_KIND_EARN, Wallet


def test_ensure_wallet_creates_once(app):
    first = wallet_ledger.ensure_wallet("a@x.com")
    second = wallet_ledger.ensure_wallet("A@x.com")
    assert first.id == second.id
    assert first.credits == 0
    assert Wallet.query.count() == 1


def test_ensure_wallet_requires_user(app):
    with pytest.raises(InvalidUser):
        wallet_ledger.ensure_wallet("  ")


def test_apply_award_earn_only(app):
    wallet, txs = wallet_ledger.apply_award("a@x.com", 5, 0, "base", "bonus")
    assert wallet.credits == 5
    assert [(t.kind, t.amount) for t in txs] == [(TX_KIND_EARN, 5)]
    assert CreditTransaction.query.count() == 1


def test_apply_award_with_bonus(app):
    wallet, txs = wallet_ledger.apply_award("a@x.com", 3, 2, "base", "bonus")
    assert wallet.credits == 5
    assert [(t.kind, t.amount, t.reason) for t in txs] == [(TX_KIND_EARN, 3, "base"), (TX_KIND_BONUS, 2, "bonus")]


def test_balance_matches_ledger_after_many_awards(app):
    for base, bonus in [(5, 0), (3, 2), (1, 0), (5, 2)]:
        wallet_ledger.apply_award("a@x.com", base, bonus, "b", "x")
    wallet_ledger.apply_award("b@x.com", 1, 0, "b", "x")

    assert wallet_ledger.get_wallet("a@x.com").credits == 18
    assert wallet_ledger.ledger_balance("a@x.com") == 18
    assert wallet_ledger.ledger_balance("b@x.com") == wallet_ledger.get_wallet("b@x.com").credits == 1


def test_apply_award_rejects_negative(app):
    with pytest.raises(InvalidRequest):
        wallet_ledger.apply_award("a@x.com", -1, 0, "b", "x")
    assert wallet_ledger.get_wallet("a@x.com") is None


def test_failed_award_rolls_back_ledger(app, monkeypatch):
    def broken_update(*args, **kwargs):
        raise RuntimeError("db went away")

    # Ledger rows are flushed, then the balance UPDATE fails.
    monkeypatch.setattr(wallet_ledger, "update", broken_update)
    with pytest.raises(RuntimeError):
        wallet_ledger.apply_award("a@x.com", 5, 2, "b", "x")
    monkeypatch.undo()

    assert CreditTransaction.query.count() == 0
    assert wallet_ledger.ledger_balance("a@x.com") == 0
    assert Wallet.query.count() == 0


def test_transactions_for_user_newest_first_and_limit(app):
    for i in range(4):
        wallet_ledger.apply_award("a@x.com", 1, 0, f"award {i}", "")
    txs = wallet_ledger.transactions_for_user("a@x.com", 3)
    assert [t.reason for t in txs] == ["award 3", "award 2", "award 1"]
    assert len(wallet_ledger.transactions_for_user("a@x.com")) == 4


@pytest.mark.parametrize("limit", [0, -5, "abc"])
def test_transactions_for_user_bad_limit(app, limit):
    with pytest.raises(InvalidRequest):
        wallet_ledger.transactions_for_user("a@x.com", limit)


def test_transactions_on_date(app):
    wallet_ledger.apply_award("a@x.com", 5, 2, "today", "today bonus")
    db.session.add(CreditTransaction(user="a@x.com", amount=3, kind=TX_KIND_EARN, reason="old",
                                     created_at=utcnow() - timedelta(days=2)))
    db.session.commit()

    today = wallet_ledger.transactions_on_date("a@x.com", utc_today())
    assert sorted(t.reason for t in today) == ["today", "today bonus"]
    assert wallet_ledger.credits_on_date("a@x.com", utc_today()) == 7


def test_reconcile_wallet_fixes_drift(app):
    wallet_ledger.apply_award("a@x.com", 5, 2, "b", "x")
    wallet = wallet_ledger.get_wallet("a@x.com")
    wallet.credits = 100
    db.session.commit()

    fixed = wallet_ledger.reconcile_wallet("a@x.com")
    assert fixed.credits == 7


def test_reconcile_wallet_without_drift_keeps_balance(app):
    wallet_ledger.apply_award("a@x.com", 3, 2, "b", "x")
    assert wallet_ledger.reconcile_wallet("a@x.com").credits == 5
    assert wallet_ledger.reconcile_wallet("nobody@x.com").credits == 0


def test_dated_award_applies_once(app):
    wallet_ledger.apply_award("a@x.com", 5, 2, "b", "x", award_date="2024-01-01")
    with pytest.raises(DuplicateSubmission):
        wallet_ledger.apply_award("a@x.com", 5, 2, "b", "x", award_date="2024-01-01")

    assert wallet_ledger.award_exists("a@x.com", "2024-01-01")
    assert not wallet_ledger.award_exists("a@x.com", "2024-01-02")
    assert CreditTransaction.query.count() == 2
    assert wallet_ledger.get_wallet("a@x.com").credits == 7


def test_dated_award_caught_by_unique_constraint(app, monkeypatch):
    """Two racing awards both pass the pre-check; the DB must stop the second."""
    wallet_ledger.apply_award("a@x.com", 5, 0, "b", "", award_date="2024-01-01")
    monkeypatch.setattr(wallet_ledger, "award_exists", lambda user, day: False)
    with pytest.raises(DuplicateSubmission):
        wallet_ledger.apply_award("a@x.com", 3, 2, "b", "x", award_date="2024-01-01")

    assert CreditTransaction.query.count() == 1
    assert wallet_ledger.ledger_balance("a@x.com") == 5
    wallet = Wallet.query.filter_by(user="a@x.com").populate_existing().one()
    assert wallet.credits == 5


def test_undated_awards_are_not_deduplicated(app):
    wallet_ledger.apply_award("a@x.com", 1, 0, "manual", "")
    wallet_ledger.apply_award("a@x.com", 1, 0, "manual", "")
    assert wallet_ledger.get_wallet("a@x.com").credits == 2
