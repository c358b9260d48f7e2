"""
ドメインモデル
領収書、銀行明細、突合結果などのデータ構造
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

# 抽出できなかったフィールドの値
UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Receipt:
    """領収書抽出データ（作成後は変更しない）"""

    date: str = UNKNOWN  # 日付らしき文字列（検証なし）
    amount: Union[str, float] = UNKNOWN  # 正規化前の生テキスト（例: "$1,234.56"）
    vendor: str = UNKNOWN
    raw_text: str = ""  # 監査・手動修正用の全文
    id: Optional[str] = None  # 保存後に台帳ストアが付与
    description: Optional[str] = None

    def to_record(self) -> Dict[str, Union[str, float]]:
        """台帳ストアに保存する形式"""
        return {
            "date": self.date,
            "amount": self.amount,
            "vendor": self.vendor,
            "raw_text": self.raw_text,
        }

    @classmethod
    def from_record(cls, row: dict) -> "Receipt":
        """台帳ストアの行から復元"""
        row_id = row.get("id")
        return cls(
            date=row.get("date") or UNKNOWN,
            amount=row.get("amount") if row.get("amount") is not None else UNKNOWN,
            vendor=row.get("vendor") or UNKNOWN,
            raw_text=row.get("raw_text") or "",
            id=str(row_id) if row_id is not None else None,
            description=row.get("description"),
        )

    def __str__(self):
        return f"Receipt(vendor={self.vendor}, date={self.date}, amount={self.amount})"


@dataclass(frozen=True)
class BankTransaction:
    """銀行明細の1行"""

    date: str
    description: str
    amount: float

    def __str__(self):
        return (
            f"BankTransaction(date={self.date}, amount={self.amount}, "
            f"description={self.description})"
        )


class MatchStatus(str, Enum):
    """突合ステータス"""

    MATCH = "match"
    LEDGER_ONLY = "ledger_only"
    BANK_ONLY = "bank_only"

    @property
    def label(self) -> str:
        """表示用ラベル（例: LEDGER ONLY）"""
        return self.value.replace("_", " ").upper()


@dataclass(frozen=True)
class ComparedTransaction:
    """突合結果の1行"""

    source: str  # "ledger" or "bank"
    vendor: str  # bank の場合は明細の摘要
    date: str
    amount: float
    status: MatchStatus
    description: Optional[str] = None

    def __str__(self):
        return (
            f"ComparedTransaction(source={self.source}, vendor={self.vendor}, "
            f"date={self.date}, amount={self.amount}, status={self.status.value})"
        )


@dataclass
class Message:
    """メールメッセージデータ"""

    id: str
    date: datetime
    subject: str
    sender: str

    def __str__(self):
        return f"Message(id={self.id}, date={self.date}, subject={self.subject[:50]}...)"


@dataclass
class Attachment:
    """メール添付ファイルデータ"""

    filename: str
    data: bytes
    message_id: str
    disposition: str = "attachment"
    content_type: str = "application/pdf"

    def __str__(self):
        size_kb = len(self.data) / 1024
        return f"Attachment(filename={self.filename}, size={size_kb:.1f}KB)"


@dataclass
class AttachmentFailure:
    """抽出に失敗した添付ファイル"""

    message_id: str
    filename: str
    error: str

    def __str__(self):
        return f"AttachmentFailure(message={self.message_id}, file={self.filename}: {self.error})"


@dataclass
class ExtractionBatch:
    """1回の抽出バッチの結果（成功分と失敗分を両方保持）"""

    receipts: List[Receipt] = field(default_factory=list)
    failures: List[AttachmentFailure] = field(default_factory=list)
    message_ids: List[str] = field(default_factory=list)  # 処理したメール（取得順）
    receipt_message_ids: List[str] = field(default_factory=list)  # receipts と同じ並び

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
