"""
銀行明細CSVの読み込み
列名の揺れ（Date / Transaction Date など）を吸収して BankTransaction に変換する
"""

import csv
import io
import logging
from pathlib import Path
from typing import Dict, List, Sequence

from ..core.amounts import clean_amount
from ..core.models import BankTransaction

logger = logging.getLogger(__name__)

DATE_COLUMNS = ("Date", "Transaction Date")
DESCRIPTION_COLUMNS = ("Description", "Details")
AMOUNT_COLUMNS = ("Amount", "Value")


def _first_value(row: Dict[str, str], aliases: Sequence[str], default: str) -> str:
    """最初に値が入っている列を採用（空文字は次の候補へ）"""
    for alias in aliases:
        value = row.get(alias)
        if value:
            return value
    return default


def normalize_row(row: Dict[str, str]) -> BankTransaction:
    """CSVの1行を BankTransaction に変換"""
    return BankTransaction(
        date=_first_value(row, DATE_COLUMNS, ""),
        description=_first_value(row, DESCRIPTION_COLUMNS, ""),
        amount=clean_amount(_first_value(row, AMOUNT_COLUMNS, "0")),
    )


def parse_bank_csv(text: str) -> List[BankTransaction]:
    """
    ヘッダー付きCSVテキストを銀行明細に変換

    Args:
        text: CSVテキスト（1行目はヘッダー）

    Returns:
        銀行明細リスト（空行は除外、入力順）
    """
    reader = csv.DictReader(io.StringIO(text))
    transactions = []

    for row in reader:
        # 空行スキップ
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        transactions.append(normalize_row(row))

    logger.info(f"Parsed {len(transactions)} bank transactions")
    return transactions


def load_bank_csv(path: str) -> List[BankTransaction]:
    """CSVファイルから銀行明細を読み込み（BOM付きUTF-8にも対応）"""
    text = Path(path).read_text(encoding="utf-8-sig")
    logger.info(f"Loading bank statement from {path}")
    return parse_bank_csv(text)
