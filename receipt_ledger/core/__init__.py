"""コアビジネスロジック"""

from .models import (
    UNKNOWN,
    Attachment,
    AttachmentFailure,
    BankTransaction,
    ComparedTransaction,
    ExtractionBatch,
    MatchStatus,
    Message,
    Receipt,
)
from .amounts import clean_amount
from .extraction import AmountPolicy, ReceiptFieldExtractor, extract_fields
from .reconciler import Reconciler, compare_transactions, summarize

__all__ = [
    "UNKNOWN",
    "Attachment",
    "AttachmentFailure",
    "BankTransaction",
    "ComparedTransaction",
    "ExtractionBatch",
    "MatchStatus",
    "Message",
    "Receipt",
    "clean_amount",
    "AmountPolicy",
    "ReceiptFieldExtractor",
    "extract_fields",
    "Reconciler",
    "compare_transactions",
    "summarize",
]
