"""
領収書取り込みバッチ
未読メール → PDF添付 → テキスト → 領収書データ → 台帳ストア
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Tuple

from .clients.gmail_client import GmailClient
from .clients.ledger_store import LedgerStore
from .clients.pdf_text import PdfTextDecoder
from .core.extraction import ReceiptFieldExtractor
from .core.models import Attachment, AttachmentFailure, ExtractionBatch, Receipt
from .errors import DocumentDecodeError, LedgerStoreError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """取り込み結果"""

    inserted: int = 0
    receipts: List[Receipt] = field(default_factory=list)
    failures: List[AttachmentFailure] = field(default_factory=list)


class ReceiptFetcher:
    """メールから領収書を抽出するバッチ処理"""

    def __init__(
        self,
        mailbox: GmailClient,
        decoder: PdfTextDecoder,
        extractor: ReceiptFieldExtractor,
        max_workers: int = 5,
        mark_read: bool = True,
    ):
        """
        Args:
            mailbox: メールボックスクライアント
            decoder: PDF→テキスト変換
            extractor: フィールド抽出
            max_workers: 並列抽出のワーカー数
            mark_read: 台帳への保存後にメールを既読にするか
        """
        self.mailbox = mailbox
        self.decoder = decoder
        self.extractor = extractor
        self.max_workers = max_workers
        self.mark_read = mark_read

    def extract_attachment(self, attachment: Attachment) -> Receipt:
        """
        添付ファイル1件から領収書データを抽出

        Raises:
            DocumentDecodeError: PDFをテキスト化できない場合
        """
        text = self.decoder.decode(attachment.data, attachment.filename)
        return self.extractor.extract_fields(text)

    def collect_attachments(self) -> Tuple[List[str], List[Attachment]]:
        """
        未読メールから処理対象の添付ファイルを集める（メール順・パート順）

        ここではメールを既読にしない。既読化は台帳への保存が済んでから。

        Returns:
            (メッセージIDリスト, 添付ファイルリスト)

        Raises:
            MailboxError: メールボックスにアクセスできない場合
        """
        messages = self.mailbox.search_unread_messages()
        logger.info(f"Found {len(messages)} unread receipt emails")

        message_ids = []
        attachments = []
        for message in messages:
            logger.info(f"Processing message: {message.subject}")
            message_ids.append(message.id)
            attachments.extend(self.mailbox.get_attachments(message.id))

        return message_ids, attachments

    def extract_batch(self) -> ExtractionBatch:
        """
        未読メールの添付PDFをすべて抽出

        添付ファイル単位の失敗はバッチを止めずに failures に記録する。
        結果の順序は並列数に関係なく添付ファイルの取得順。
        """
        message_ids, attachments = self.collect_attachments()
        batch = ExtractionBatch(message_ids=message_ids)

        if not attachments:
            logger.info("No PDF attachments to process")
            return batch

        logger.info(
            f"Extracting {len(attachments)} PDFs (max {self.max_workers} workers)"
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.extract_attachment, attachment)
                for attachment in attachments
            ]

            # 投入順に結果を回収
            for attachment, future in zip(attachments, futures):
                try:
                    receipt = future.result()
                except DocumentDecodeError as e:
                    logger.error(f"✗ Failed: {attachment.filename}: {e}")
                    batch.failures.append(
                        AttachmentFailure(attachment.message_id, attachment.filename, str(e))
                    )
                    continue
                except Exception as e:
                    logger.exception(f"Error processing {attachment.filename}: {e}")
                    batch.failures.append(
                        AttachmentFailure(attachment.message_id, attachment.filename, str(e))
                    )
                    continue

                batch.receipts.append(receipt)
                batch.receipt_message_ids.append(attachment.message_id)
                logger.info(f"✓ Extracted: {attachment.filename} -> {receipt}")

        logger.info(
            f"Extracted {len(batch.receipts)} receipts, {len(batch.failures)} failed"
        )
        return batch

    def fetch_and_store(self, store: LedgerStore) -> FetchResult:
        """
        抽出した領収書を台帳ストアに保存し、保存済みのメールだけ既読にする

        保存が途中で失敗した場合、未保存の領収書を含むメールは未読のまま残るので
        次回の fetch で再処理される。

        Raises:
            MailboxError: メールボックスにアクセスできない場合
            LedgerStoreError: 保存に失敗した場合（バッチ全体の失敗、stored に保存済み分）
        """
        batch = self.extract_batch()

        try:
            stored = store.insert_receipts(batch.receipts)
        except LedgerStoreError as e:
            logger.error(
                f"Ledger store failed after {len(e.stored)} of {len(batch.receipts)} receipts"
            )
            self._mark_stored_messages_read(batch, len(e.stored))
            raise

        self._mark_stored_messages_read(batch, len(stored))

        return FetchResult(
            inserted=len(stored),
            receipts=stored,
            failures=batch.failures,
        )

    def _mark_stored_messages_read(self, batch: ExtractionBatch, stored_count: int) -> List[str]:
        """領収書がすべて保存されたメールを既読にする"""
        if not self.mark_read:
            return []

        pending = set(batch.receipt_message_ids[stored_count:])
        done = [message_id for message_id in batch.message_ids if message_id not in pending]
        for message_id in done:
            self.mailbox.mark_as_read(message_id)

        logger.info(f"Marked {len(done)} messages as read ({len(pending)} left unread)")
        return done
