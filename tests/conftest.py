"""Test fixtures and utilities."""

from datetime import datetime

import pytest

from receipt_ledger.core.models import Attachment, BankTransaction, Message, Receipt
from receipt_ledger.errors import DocumentDecodeError, LedgerStoreError

SAMPLE_RECEIPT_TEXT = """
From: Acme Hardware
123 Main Street
Springfield

Date: 01/05/2024
Invoice #10442

Hammer                      $25.00
Nails (box)                 $19.50
Subtotal                    $44.50
Tax                          $5.50
Total:                      $50.00

Thank you for your business!
"""

SAMPLE_INVOICE_TEXT = """
Store: Corner Coffee Co.
Date 2024-03-18
Latte                        $4.75
Total: $1,234.56
"""


@pytest.fixture
def receipt_text() -> str:
    return SAMPLE_RECEIPT_TEXT


@pytest.fixture
def acme_receipt() -> Receipt:
    return Receipt(date="2024-01-05", amount="$50.00", vendor="Acme", raw_text="...")


@pytest.fixture
def acme_bank() -> BankTransaction:
    return BankTransaction(date="2024-01-05", description="ACME HARDWARE STORE", amount=50.00)


class FakeMailbox:
    """メールボックスのテスト用実装"""

    def __init__(self, messages):
        # messages: [(Message, [Attachment, ...]), ...]
        self._messages = messages
        self.read_ids = []

    def search_unread_messages(self):
        return [message for message, _ in self._messages]

    def get_attachments(self, message_id):
        for message, attachments in self._messages:
            if message.id == message_id:
                return list(attachments)
        return []

    def mark_as_read(self, message_id):
        self.read_ids.append(message_id)


class FakeDecoder:
    """バイト列をUTF-8テキストとして扱う。b"CORRUPT" で始まるものは失敗"""

    def decode(self, data, name=""):
        if data.startswith(b"CORRUPT"):
            raise DocumentDecodeError(f"Failed to read PDF {name}")
        return data.decode("utf-8")


class FakeStore:
    """fail_after 件保存した後に LedgerStoreError を送出する（None なら失敗しない）"""

    def __init__(self, fail_after=None):
        self.rows = []
        self.fail_after = fail_after

    def insert_receipts(self, receipts):
        stored = []
        for receipt in receipts:
            if self.fail_after is not None and len(stored) >= self.fail_after:
                raise LedgerStoreError("ledger unavailable", stored=stored)
            self.rows.append(receipt.to_record())
            stored.append(Receipt.from_record({"id": len(self.rows), **receipt.to_record()}))
        return stored


def make_message(message_id: str, subject: str = "Your receipt") -> Message:
    return Message(
        id=message_id,
        date=datetime(2024, 1, 5, 9, 30),
        subject=subject,
        sender="billing@example.com",
    )


def make_attachment(message_id: str, filename: str, text: str) -> Attachment:
    return Attachment(filename=filename, data=text.encode("utf-8"), message_id=message_id)
