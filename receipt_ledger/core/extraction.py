"""
領収書フィールド抽出
PDFから取り出したテキストを正規表現で解析し、日付・金額・店舗名を取り出す
"""

import logging
import re
from enum import Enum
from typing import Optional

from .models import UNKNOWN, Receipt

logger = logging.getLogger(__name__)


class AmountPolicy(str, Enum):
    """複数の金額が見つかった場合の選び方"""

    # 文書中で最初に現れた金額（小計・税額が先にあると誤抽出する）
    FIRST_OCCURRENCE = "first_occurrence"
    # "Total" を含む行の金額を優先し、なければ最初の金額
    PREFER_TOTAL = "prefer_total"


class ReceiptFieldExtractor:
    """正規表現による領収書フィールド抽出"""

    AMOUNT_PATTERN = re.compile(r"\$[\d,]+\.\d{2}")
    VENDOR_PATTERN = re.compile(r"(?:Vendor|Store|From):?\s*(.+)", re.IGNORECASE)
    DATE_PATTERN = re.compile(r"Date:?\s*([\d/\-]+)", re.IGNORECASE)
    TOTAL_LINE_PATTERN = re.compile(r"(?<!sub)total", re.IGNORECASE)

    def __init__(self, amount_policy: AmountPolicy = AmountPolicy.FIRST_OCCURRENCE):
        """
        Args:
            amount_policy: 金額の選択ポリシー
        """
        self.amount_policy = AmountPolicy(amount_policy)

    def extract_fields(self, text: str) -> Receipt:
        """
        テキストから領収書データを抽出

        どのフィールドも見つからなければ "Unknown" になる。例外は送出しない。

        Args:
            text: ドキュメントの全文

        Returns:
            抽出データ（raw_text には入力をそのまま保持）
        """
        text = text or ""

        receipt = Receipt(
            date=self._extract_date(text) or UNKNOWN,
            amount=self._extract_amount(text) or UNKNOWN,
            vendor=self._extract_vendor(text) or UNKNOWN,
            raw_text=text,
        )

        logger.debug(f"Extracted: {receipt}")
        return receipt

    def _extract_amount(self, text: str) -> Optional[str]:
        if self.amount_policy == AmountPolicy.PREFER_TOTAL:
            for line in text.splitlines():
                if not self.TOTAL_LINE_PATTERN.search(line):
                    continue
                match = self.AMOUNT_PATTERN.search(line)
                if match:
                    return match.group(0)

        match = self.AMOUNT_PATTERN.search(text)
        return match.group(0) if match else None

    def _extract_vendor(self, text: str) -> Optional[str]:
        match = self.VENDOR_PATTERN.search(text)
        if not match:
            return None
        return match.group(1).strip() or None

    def _extract_date(self, text: str) -> Optional[str]:
        match = self.DATE_PATTERN.search(text)
        return match.group(1) if match else None


def extract_fields(text: str) -> Receipt:
    """既定ポリシーでの抽出"""
    return ReceiptFieldExtractor().extract_fields(text)
