import pytest

import footprint_ledger
import wallet_ledger
from credit_awards import award_for_footprint
from errors import DuplicateSubmission, InvalidRequest


def test_first_award_has_no_bonus(app):
    summary = award_for_footprint("a@x.com", 6.31, "2024-01-01")
    assert summary["baseCredits"] == 5
    assert summary["bonusCredits"] == 0
    assert summary["totalAwarded"] == 5
    assert summary["wallet"]["credits"] == 5
    assert [t["kind"] for t in summary["transactions"]] == ["earn"]
    assert summary["transactions"][0]["reason"] == "Daily footprint 2024-01-01: score 6.3"


def test_improvement_against_last_submission_not_yesterday(app):
    footprint_ledger.submit({"user": "a@x.com", "date": "2024-01-01", "total_score": 12})
    summary = award_for_footprint("a@x.com", 11, "2024-02-15")
    assert summary["baseCredits"] == 3
    assert summary["bonusCredits"] == 2
    assert summary["previousScore"] == 12
    bonus = [t for t in summary["transactions"] if t["kind"] == "bonus"][0]
    assert bonus["amount"] == 2
    assert bonus["reason"] == "Improvement bonus: score 11.0 below previous 12.0"


def test_same_day_record_is_not_previous(app):
    footprint_ledger.submit({"user": "a@x.com", "date": "2024-01-02", "total_score": 30})
    summary = award_for_footprint("a@x.com", 8, "2024-01-02")
    assert summary["bonusCredits"] == 0


@pytest.mark.parametrize("user, score", [("", 5), (None, 5), ("a@x.com", None), ("a@x.com", "abc"),
                                         ("a@x.com", float("nan")), ("a@x.com", True),
                                         ("a@x.com", 10 ** 400)])
def test_invalid_requests(app, user, score):
    with pytest.raises(InvalidRequest):
        award_for_footprint(user, score, "2024-01-01")
    assert wallet_ledger.get_wallet("a@x.com") is None


def test_bad_date_is_invalid_request(app):
    with pytest.raises(InvalidRequest):
        award_for_footprint("a@x.com", 5, "yesterday")


def test_numeric_string_score_accepted(app):
    assert award_for_footprint("a@x.com", "21", "2024-01-01")["baseCredits"] == 1


def test_wallet_equals_ledger_after_awards(app):
    for day, score in [("2024-01-01", 15), ("2024-01-02", 9), ("2024-01-03", 25)]:
        footprint_ledger.submit({"user": "a@x.com", "date": day, "total_score": score})
        award_for_footprint("a@x.com", score, day)
    # 3 + (5 + 2) + 1
    assert wallet_ledger.get_wallet("a@x.com").credits == 11
    assert wallet_ledger.ledger_balance("a@x.com") == 11


def test_second_award_for_same_day_is_rejected(app):
    award_for_footprint("a@x.com", 6.31, "2024-01-01")
    with pytest.raises(DuplicateSubmission):
        award_for_footprint("a@x.com", 2, "2024-01-01")
    assert wallet_ledger.get_wallet("a@x.com").credits == 5
    assert wallet_ledger.ledger_balance("a@x.com") == 5

    # another day is still awarded
    assert award_for_footprint("a@x.com", 6.31, "2024-01-02")["wallet"]["credits"] == 10
