"""
突合結果・台帳の表示用テーブル
"""

from typing import List, Sequence

from .amounts import clean_amount, format_amount, parse_loose_date
from .models import ComparedTransaction, Receipt

NONE_LABEL = "None"


def _format_date(value: str) -> str:
    parsed = parse_loose_date(value)
    return parsed.isoformat() if parsed else value


def _render_table(headers: List[str], rows: List[List[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    lines = [
        "  ".join(h.ljust(w) for h, w in zip(headers, widths)),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
    return "\n".join(lines)


def render_comparison(compared: Sequence[ComparedTransaction]) -> str:
    """
    突合結果をテーブル文字列に整形

    金額が数値でない行は "Invalid" と表示する（ステータスはそのまま）
    """
    rows = [
        [
            tx.source,
            tx.vendor,
            _format_date(tx.date),
            format_amount(tx.amount),
            tx.status.label,
        ]
        for tx in compared
    ]
    return _render_table(["Source", "Vendor", "Date", "Amount", "Status"], rows)


def render_receipts(receipts: Sequence[Receipt]) -> str:
    """台帳の領収書一覧をテーブル文字列に整形"""
    rows = [
        [
            r.vendor,
            format_amount(clean_amount(r.amount)),
            _format_date(r.date),
            r.description or NONE_LABEL,
        ]
        for r in receipts
    ]
    return _render_table(["Vendor", "Amount", "Date", "Description"], rows)
