import math

import pytest

from receipt_ledger.core.models import BankTransaction, MatchStatus, Receipt
from receipt_ledger.core.reconciler import (
    AvailablePool,
    Reconciler,
    compare_transactions,
    summarize,
)


def _statuses(compared):
    return [row.status for row in compared]


def test_exact_match(acme_receipt, acme_bank):
    compared = compare_transactions([acme_receipt], [acme_bank])

    assert len(compared) == 1
    row = compared[0]
    assert row.status == MatchStatus.MATCH
    assert row.source == "ledger"
    assert row.vendor == "Acme"
    assert row.amount == 50.0


def test_no_double_consumption(acme_receipt, acme_bank):
    compared = compare_transactions([acme_receipt, acme_receipt], [acme_bank])

    assert _statuses(compared) == [MatchStatus.MATCH, MatchStatus.LEDGER_ONLY]


def test_leftover_bank_records_are_bank_only(acme_receipt, acme_bank):
    other = BankTransaction(date="2024-01-06", description="GROCERY MART", amount=12.34)
    compared = compare_transactions([acme_receipt], [other, acme_bank])

    assert _statuses(compared) == [MatchStatus.MATCH, MatchStatus.BANK_ONLY]
    leftover = compared[1]
    assert leftover.source == "bank"
    assert leftover.vendor == "GROCERY MART"
    assert leftover.description == ""
    assert leftover.amount == 12.34


def test_first_eligible_wins():
    receipts = [
        Receipt(date="2024-01-05", amount="$10.00", vendor="cafe"),
        Receipt(date="2024-01-05", amount="$10.00", vendor="cafe"),
    ]
    bank = [
        BankTransaction(date="2024-01-05", description="CAFE ONE", amount=10.0),
        BankTransaction(date="2024-01-05", description="CAFE TWO", amount=10.0),
        BankTransaction(date="2024-01-05", description="CAFE THREE", amount=10.0),
    ]

    compared = compare_transactions(receipts, bank)

    assert _statuses(compared) == [
        MatchStatus.MATCH,
        MatchStatus.MATCH,
        MatchStatus.BANK_ONLY,
    ]
    assert compared[2].vendor == "CAFE THREE"


def test_amount_mismatch_is_not_matched(acme_receipt):
    bank = [BankTransaction(date="2024-01-05", description="ACME HARDWARE", amount=50.01)]
    compared = compare_transactions([acme_receipt], bank)

    assert _statuses(compared) == [MatchStatus.LEDGER_ONLY, MatchStatus.BANK_ONLY]


def test_date_compared_by_calendar_day():
    receipt = Receipt(date="01/05/2024", amount="$50.00", vendor="Acme")
    bank = [BankTransaction(date="2024-01-05", description="ACME HARDWARE", amount=50.0)]

    assert _statuses(compare_transactions([receipt], bank)) == [MatchStatus.MATCH]


def test_different_day_is_not_matched(acme_receipt):
    bank = [BankTransaction(date="2024-01-06", description="ACME HARDWARE", amount=50.0)]
    compared = compare_transactions([acme_receipt], bank)

    assert _statuses(compared) == [MatchStatus.LEDGER_ONLY, MatchStatus.BANK_ONLY]


def test_vendor_containment_is_one_directional():
    # 明細の摘要が領収書の店舗名に含まれていてもマッチしない
    receipt = Receipt(date="2024-01-05", amount="$50.00", vendor="Acme Hardware Store")
    bank = [BankTransaction(date="2024-01-05", description="ACME", amount=50.0)]

    compared = compare_transactions([receipt], bank)
    assert _statuses(compared) == [MatchStatus.LEDGER_ONLY, MatchStatus.BANK_ONLY]


def test_unknown_amount_never_matches():
    receipt = Receipt(date="2024-01-05", amount="Unknown", vendor="Acme")
    bank = [BankTransaction(date="2024-01-05", description="ACME", amount=math.nan)]

    compared = compare_transactions([receipt], bank)

    assert _statuses(compared) == [MatchStatus.LEDGER_ONLY, MatchStatus.BANK_ONLY]
    assert math.isnan(compared[0].amount)


def test_unparsable_dates_never_match():
    receipt = Receipt(date="Unknown", amount="$5.00", vendor="Acme")
    bank = [BankTransaction(date="", description="ACME", amount=5.0)]

    compared = compare_transactions([receipt], bank)
    assert _statuses(compared) == [MatchStatus.LEDGER_ONLY, MatchStatus.BANK_ONLY]


def test_ledger_description_carried_through():
    receipt = Receipt(date="2024-01-05", amount=5, vendor="Acme", description="tools")
    compared = compare_transactions([receipt], [])

    assert compared[0].description == "tools"
    assert compared[0].amount == 5.0


def test_completeness_invariant():
    receipts = [
        Receipt(date="2024-01-05", amount="$50.00", vendor="Acme"),
        Receipt(date="2024-01-06", amount="$8.25", vendor="Bakery"),
        Receipt(date="Unknown", amount="Unknown", vendor="Unknown"),
    ]
    bank = [
        BankTransaction(date="2024-01-05", description="ACME HARDWARE", amount=50.0),
        BankTransaction(date="2024-01-07", description="FUEL STATION", amount=40.0),
        BankTransaction(date="2024-01-06", description="THE BAKERY", amount=8.25),
        BankTransaction(date="2024-01-08", description="PHARMACY", amount=15.0),
    ]

    compared = compare_transactions(receipts, bank)
    summary = summarize(compared)

    assert summary.matched == 2
    assert len(compared) == len(receipts) + (len(bank) - summary.matched)
    assert [row.source for row in compared[:3]] == ["ledger"] * 3
    assert [row.vendor for row in compared[3:]] == ["FUEL STATION", "PHARMACY"]


def test_compare_is_deterministic(acme_receipt, acme_bank):
    receipts = [acme_receipt, acme_receipt]
    bank = [acme_bank, acme_bank]
    reconciler = Reconciler()

    assert reconciler.compare(receipts, bank) == reconciler.compare(receipts, bank)


def test_empty_inputs():
    assert compare_transactions([], []) == []


def test_pool_refuses_second_claim(acme_bank):
    pool = AvailablePool([acme_bank])
    slot = next(pool.candidates("50.00"))

    pool.claim(slot)

    with pytest.raises(ValueError):
        pool.claim(slot)
    assert list(pool.candidates("50.00")) == []
    assert pool.remaining() == []


def test_zero_amount_matches_negative_zero_bank_amount():
    receipt = Receipt(date="2024-01-05", amount=0, vendor="Acme")
    bank = [BankTransaction(date="2024-01-05", description="ACME REFUND", amount=-0.0)]

    assert _statuses(compare_transactions([receipt], bank)) == [MatchStatus.MATCH]


def test_exact_half_cent_rounds_up_before_comparison():
    receipt = Receipt(date="2024-01-05", amount="$0.125", vendor="Acme")
    bank = [
        BankTransaction(date="2024-01-05", description="ACME", amount=0.12),
        BankTransaction(date="2024-01-05", description="ACME", amount=0.13),
    ]

    compared = compare_transactions([receipt], bank)

    assert _statuses(compared) == [MatchStatus.MATCH, MatchStatus.BANK_ONLY]
    assert compared[1].amount == 0.12
