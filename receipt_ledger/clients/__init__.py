"""外部サービス・入出力クライアント"""

from .bank_feed import load_bank_csv, parse_bank_csv
from .gmail_client import GmailClient
from .ledger_store import LedgerStore
from .pdf_text import PdfTextDecoder

__all__ = [
    "GmailClient",
    "LedgerStore",
    "PdfTextDecoder",
    "load_bank_csv",
    "parse_bank_csv",
]
