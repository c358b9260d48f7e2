"""
金額・日付の正規化ヘルパー
抽出結果（生テキスト）と銀行明細（数値）を同じ基準で比較するために使う
"""

import math
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from dateutil import parser as date_parser

# 数字・マイナス・ピリオド以外を除去
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")

# 先頭から読める範囲の浮動小数点数（"1.2.3" -> "1.2"）
_LEADING_FLOAT = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")

_CENTS = Decimal("0.01")

INVALID_AMOUNT_LABEL = "Invalid"


def clean_amount(value: Union[str, int, float, None]) -> float:
    """
    金額を数値に正規化

    数値はそのまま、空・None は 0、文字列は通貨記号や桁区切りを除去して
    先頭から数値として読む。読めない場合は NaN。

    Args:
        value: 金額（"$1,234.56"、1234.56 など）

    Returns:
        正規化した金額
    """
    if isinstance(value, (int, float)):
        return float(value)
    if not value:
        return 0.0

    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return math.nan
    return float(match.group())


def amount_key(value: float) -> Optional[str]:
    """
    突合用の金額キー（小数点以下2桁の文字列）

    浮動小数点の正確な値を四捨五入する（0.125 -> "0.13"、-0.0 は "0.00"）。
    NaN・無限大はどの金額とも一致させないため None を返す
    """
    if not math.isfinite(value):
        return None
    if value == 0:
        value = 0.0
    try:
        return str(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # 有効桁数を超える巨大な値
        return f"{value:.2f}"


def parse_loose_date(value: Optional[str]) -> Optional[date]:
    """
    日付文字列を緩くパース（"2024-01-05", "01/05/2024", "Jan 5, 2024" など）

    Returns:
        日付、パースできない場合はNone
    """
    if not value:
        return None
    try:
        return date_parser.parse(str(value)).date()
    except (ValueError, OverflowError):
        return None


def format_amount(value: float) -> str:
    """USD表記に整形（"$1,234.56"）、数値でない場合は "Invalid" """
    if not math.isfinite(value):
        return INVALID_AMOUNT_LABEL
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"
