#!/usr/bin/env python3
"""
receipt-ledger メインエントリポイント
未読メールの領収書PDFを台帳に取り込み、銀行明細CSVと突合する
"""

import argparse
import logging
import sys
from pathlib import Path

from receipt_ledger.clients import GmailClient, LedgerStore, PdfTextDecoder, load_bank_csv
from receipt_ledger.config import (
    ExtractionConfig,
    LedgerStoreConfig,
    MailboxConfig,
    load_config,
    load_credentials,
)
from receipt_ledger.core import ReceiptFieldExtractor, Reconciler, summarize
from receipt_ledger.core.report import render_comparison, render_receipts
from receipt_ledger.errors import ReceiptLedgerError
from receipt_ledger.pipeline import ReceiptFetcher

# ログ設定
logger = logging.getLogger(__name__)


def setup_logging(log_level: str, log_file: str) -> None:
    """ログ設定"""
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, log_level.upper(), logging.INFO)

    # ルートロガー設定
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def parse_args(argv=None):
    """コマンドライン引数パース"""
    parser = argparse.ArgumentParser(
        description="receipt-ledger: メール領収書の台帳化と銀行明細の突合"
    )

    parser.add_argument(
        "--config",
        default="./config.yaml",
        help="設定ファイルパス（デフォルト: ./config.yaml）",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("fetch", help="未読メールの領収書を抽出して台帳に保存")

    reconcile = subparsers.add_parser("reconcile", help="台帳と銀行明細CSVを突合")
    reconcile.add_argument("--bank-csv", required=True, help="銀行明細CSVファイル")

    extract = subparsers.add_parser("extract", help="ローカルPDFから抽出結果のみ表示")
    extract.add_argument("pdf", nargs="+", help="PDFファイル")

    return parser.parse_args(argv)


def run_fetch(config: dict) -> int:
    """未読メール → 台帳ストア"""
    extraction_config = ExtractionConfig.from_dict(config.get("extraction", {}))
    mailbox_config = MailboxConfig.from_dict(config.get("gmail", {}))

    store = LedgerStore(LedgerStoreConfig.from_dict(config.get("ledger_store", {})))
    fetcher = ReceiptFetcher(
        mailbox=GmailClient(mailbox_config),
        decoder=PdfTextDecoder(max_pages=extraction_config.max_pages),
        extractor=ReceiptFieldExtractor(amount_policy=extraction_config.amount_policy),
        max_workers=extraction_config.max_workers,
        mark_read=mailbox_config.mark_read,
    )

    result = fetcher.fetch_and_store(store)

    logger.info("=" * 60)
    logger.info(f"Inserted: {result.inserted}")
    for receipt in result.receipts:
        logger.info(f"  • {receipt}")

    logger.info(f"Failed attachments: {len(result.failures)}")
    for failure in result.failures:
        logger.info(f"  • {failure}")
    logger.info("=" * 60)

    return 0


def run_reconcile(config: dict, bank_csv: str) -> int:
    """台帳 × 銀行明細"""
    store = LedgerStore(LedgerStoreConfig.from_dict(config.get("ledger_store", {})))
    receipts = list(store.list_receipts().values())
    bank = load_bank_csv(bank_csv)

    print(render_receipts(receipts))
    print()

    if not receipts and not bank:
        logger.info("Nothing to compare (no receipts or bank transactions)")
        return 0

    compared = Reconciler().compare(receipts, bank)
    print(render_comparison(compared))

    summary = summarize(compared)
    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Receipts: {len(receipts)}")
    logger.info(f"Bank transactions: {len(bank)}")
    logger.info(f"Matched: {summary.matched}")
    logger.info(f"Ledger only: {summary.ledger_only}")
    logger.info(f"Bank only: {summary.bank_only}")

    return 0


def run_extract(config: dict, pdf_paths) -> int:
    """ローカルPDFの抽出（保存しない）"""
    extraction_config = ExtractionConfig.from_dict(config.get("extraction", {}))
    decoder = PdfTextDecoder(max_pages=extraction_config.max_pages)
    extractor = ReceiptFieldExtractor(amount_policy=extraction_config.amount_policy)
    failed = 0

    for pdf_path in pdf_paths:
        try:
            text = decoder.decode(Path(pdf_path).read_bytes(), pdf_path)
        except (OSError, ReceiptLedgerError) as e:
            logger.error(f"✗ Failed: {pdf_path}: {e}")
            failed += 1
            continue

        receipt = extractor.extract_fields(text)
        print(f"{pdf_path}: date={receipt.date} amount={receipt.amount} vendor={receipt.vendor}")

    return 1 if failed else 0


def main(argv=None) -> int:
    """メイン処理"""
    args = parse_args(argv)

    try:
        # 設定読み込み
        config = load_config(args.config)

        # 認証情報読み込み（credentials/から）
        load_credentials(config)
    except ReceiptLedgerError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(str(e))
        return 1

    # ログ設定
    setup_logging(
        config.get("logging", {}).get("level", "INFO"),
        config.get("logging", {}).get("file", "logs/receipt-ledger.log"),
    )

    try:
        if args.command == "fetch":
            return run_fetch(config)
        if args.command == "reconcile":
            return run_reconcile(config, args.bank_csv)
        return run_extract(config, args.pdf)

    except (ReceiptLedgerError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
