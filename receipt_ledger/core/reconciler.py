"""
突合エンジン
台帳の領収書と銀行明細を 金額×日付×店舗名 で1対1に突合する
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence

from .amounts import amount_key, clean_amount, parse_loose_date
from .models import BankTransaction, ComparedTransaction, MatchStatus, Receipt

logger = logging.getLogger(__name__)


@dataclass
class BankSlot:
    """突合待ちの銀行明細（一度使われたら consumed）"""

    index: int
    record: BankTransaction
    amount_key: Optional[str]
    date: Optional[date]
    description: str
    consumed: bool = False


class AvailablePool:
    """
    未使用の銀行明細プール

    明細は金額キーごとに入力順で保持する。claim() 済みの明細は二度と
    候補にならないので、1明細が複数の領収書にマッチすることはない。
    """

    def __init__(self, bank: Sequence[BankTransaction]):
        self.slots: List[BankSlot] = []
        self._by_amount: Dict[str, List[BankSlot]] = defaultdict(list)

        for index, record in enumerate(bank):
            slot = BankSlot(
                index=index,
                record=record,
                amount_key=amount_key(clean_amount(record.amount)),
                date=parse_loose_date(record.date),
                description=(record.description or "").lower(),
            )
            self.slots.append(slot)
            if slot.amount_key is not None:
                self._by_amount[slot.amount_key].append(slot)

    def candidates(self, key: Optional[str]) -> Iterator[BankSlot]:
        """同じ金額キーの未使用明細を入力順に返す"""
        if key is None:
            return
        for slot in self._by_amount.get(key, []):
            if not slot.consumed:
                yield slot

    def claim(self, slot: BankSlot) -> BankTransaction:
        if slot.consumed:
            raise ValueError(f"Bank record {slot.index} is already matched")
        slot.consumed = True
        return slot.record

    def remaining(self) -> List[BankSlot]:
        """未使用の明細（入力順）"""
        return [slot for slot in self.slots if not slot.consumed]


@dataclass
class ReconciliationSummary:
    """突合結果の件数"""

    matched: int = 0
    ledger_only: int = 0
    bank_only: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.ledger_only + self.bank_only


class Reconciler:
    """
    領収書と銀行明細の突合

    貪欲法: 台帳を入力順に1回走査し、各領収書について条件を満たす
    最初の（インデックス最小の）未使用明細を採用する。全体最適化はしない。
    """

    def compare(
        self,
        ledger: Sequence[Receipt],
        bank: Sequence[BankTransaction],
    ) -> List[ComparedTransaction]:
        """
        台帳と銀行明細を突合

        Args:
            ledger: 領収書リスト
            bank: 銀行明細リスト

        Returns:
            領収書ごとに1行（match / ledger_only）、続けて未使用明細ごとに1行（bank_only）
        """
        logger.info(f"Comparing {len(ledger)} receipts with {len(bank)} bank transactions")

        pool = AvailablePool(bank)
        compared: List[ComparedTransaction] = []

        for receipt in ledger:
            amount = clean_amount(receipt.amount)
            slot = self._find_candidate(receipt, amount, pool)

            if slot is not None:
                pool.claim(slot)
                status = MatchStatus.MATCH
                logger.debug(f"Matched: {receipt} -> {slot.record}")
            else:
                status = MatchStatus.LEDGER_ONLY

            compared.append(
                ComparedTransaction(
                    source="ledger",
                    vendor=receipt.vendor,
                    date=receipt.date,
                    amount=amount,
                    description=receipt.description,
                    status=status,
                )
            )

        for slot in pool.remaining():
            compared.append(
                ComparedTransaction(
                    source="bank",
                    vendor=slot.record.description,
                    date=slot.record.date,
                    amount=slot.record.amount,
                    description="",
                    status=MatchStatus.BANK_ONLY,
                )
            )

        summary = summarize(compared)
        logger.info(
            f"Comparison complete: {summary.matched} matched, "
            f"{summary.ledger_only} ledger only, {summary.bank_only} bank only"
        )
        return compared

    def _find_candidate(
        self,
        receipt: Receipt,
        amount: float,
        pool: AvailablePool,
    ) -> Optional[BankSlot]:
        """条件を満たす最初の未使用明細、なければNone"""
        receipt_date = parse_loose_date(receipt.date)
        if receipt_date is None:
            return None

        vendor = (receipt.vendor or "").lower()

        for slot in pool.candidates(amount_key(amount)):
            if slot.date != receipt_date:
                continue
            if vendor not in slot.description:
                continue
            return slot

        return None


def summarize(compared: Sequence[ComparedTransaction]) -> ReconciliationSummary:
    """ステータスごとの件数を集計"""
    summary = ReconciliationSummary()
    for row in compared:
        if row.status == MatchStatus.MATCH:
            summary.matched += 1
        elif row.status == MatchStatus.LEDGER_ONLY:
            summary.ledger_only += 1
        else:
            summary.bank_only += 1
    return summary


def compare_transactions(
    ledger: Sequence[Receipt],
    bank: Sequence[BankTransaction],
) -> List[ComparedTransaction]:
    return Reconciler().compare(ledger, bank)
