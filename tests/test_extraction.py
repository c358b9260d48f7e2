from receipt_ledger.core.extraction import AmountPolicy, ReceiptFieldExtractor, extract_fields
from receipt_ledger.core.models import UNKNOWN

from .conftest import SAMPLE_INVOICE_TEXT


def test_amount_with_thousands_separator():
    receipt = extract_fields("Order summary\nTotal: $1,234.56\nPaid by card")
    assert receipt.amount == "$1,234.56"


def test_missing_amount_defaults_to_unknown():
    receipt = extract_fields("Total: 12 EUR")
    assert receipt.amount == UNKNOWN


def test_vendor_is_trimmed():
    receipt = extract_fields("From:   Acme Hardware   \nDate: 2024-01-05\n")
    assert receipt.vendor == "Acme Hardware"


def test_vendor_label_is_case_insensitive():
    assert extract_fields("STORE: Corner Coffee").vendor == "Corner Coffee"
    assert extract_fields("vendor Big Box").vendor == "Big Box"


def test_date_pattern():
    assert extract_fields("Date: 01/05/2024").date == "01/05/2024"
    assert extract_fields("date 2024-03-18 10:00").date == "2024-03-18"


def test_all_fields_missing():
    receipt = extract_fields("nothing useful here")
    assert receipt.date == UNKNOWN
    assert receipt.amount == UNKNOWN
    assert receipt.vendor == UNKNOWN
    assert receipt.raw_text == "nothing useful here"


def test_empty_text_does_not_raise():
    receipt = extract_fields("")
    assert receipt.vendor == UNKNOWN
    assert receipt.raw_text == ""


def test_raw_text_retained_verbatim(receipt_text):
    receipt = extract_fields(receipt_text)
    assert receipt.raw_text == receipt_text
    assert receipt.vendor == "Acme Hardware"
    assert receipt.date == "01/05/2024"


def test_first_occurrence_policy_takes_first_amount(receipt_text):
    # 小計より前の明細行の金額が選ばれる
    receipt = ReceiptFieldExtractor().extract_fields(receipt_text)
    assert receipt.amount == "$25.00"


def test_prefer_total_policy(receipt_text):
    extractor = ReceiptFieldExtractor(amount_policy=AmountPolicy.PREFER_TOTAL)
    assert extractor.extract_fields(receipt_text).amount == "$50.00"
    assert extractor.extract_fields(SAMPLE_INVOICE_TEXT).amount == "$1,234.56"


def test_prefer_total_falls_back_to_first_amount():
    extractor = ReceiptFieldExtractor(amount_policy="prefer_total")
    assert extractor.extract_fields("Item $3.00\nItem $4.00").amount == "$3.00"
