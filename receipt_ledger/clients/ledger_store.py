"""
台帳ストア クライアント
Supabase (PostgREST) の ledger テーブルに領収書を保存・取得する
"""

import logging
import time
from typing import Dict, Iterable, List

import requests

from ..config import LedgerStoreConfig
from ..core.models import Receipt
from ..errors import LedgerStoreError

logger = logging.getLogger(__name__)


class LedgerStore:
    """台帳ストア REST クライアント"""

    def __init__(self, config: LedgerStoreConfig, max_retries: int = 3):
        """
        Args:
            config: 台帳ストア設定（url, api_key, table）
            max_retries: 最大リトライ回数
        """
        config.validate()
        self.config = config
        self.max_retries = max_retries
        self.base_url = f"{config.url.rstrip('/')}/rest/v1/{config.table}"
        self.session = requests.Session()
        self.session.headers.update(
            {
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            }
        )

    def insert_receipt(self, receipt: Receipt) -> Receipt:
        """
        領収書を1件保存

        Returns:
            ストアが付与したIDを持つ領収書

        Raises:
            LedgerStoreError: 保存失敗
        """
        response = self._request_with_retry(
            "POST",
            self.base_url,
            json=receipt.to_record(),
            headers={"Prefer": "return=representation"},
        )

        try:
            rows = response.json()
        except ValueError as e:
            raise LedgerStoreError(f"Failed to parse insert response: {e}") from e

        if not rows:
            raise LedgerStoreError("Insert returned no rows")

        stored = Receipt.from_record(rows[0])
        logger.info(f"Inserted receipt {stored.id}: {stored}")
        return stored

    def insert_receipts(self, receipts: Iterable[Receipt]) -> List[Receipt]:
        """
        領収書を順に保存

        Raises:
            LedgerStoreError: 1件でも失敗した場合（それまでに保存した分は stored に入る）
        """
        stored: List[Receipt] = []
        for receipt in receipts:
            try:
                stored.append(self.insert_receipt(receipt))
            except LedgerStoreError as e:
                raise LedgerStoreError(
                    f"Stored {len(stored)} receipts before failure: {e}", stored=stored
                ) from e
        return stored

    def list_receipts(self) -> Dict[str, Receipt]:
        """
        保存済みの領収書をすべて取得

        Returns:
            ID → 領収書（保存順）

        Raises:
            LedgerStoreError: 取得失敗
        """
        response = self._request_with_retry(
            "GET",
            self.base_url,
            params={"select": "*", "order": "id.asc"},
        )

        try:
            rows = response.json()
        except ValueError as e:
            raise LedgerStoreError(f"Failed to parse ledger response: {e}") from e

        receipts = {}
        for row in rows:
            receipt = Receipt.from_record(row)
            receipts[receipt.id] = receipt

        logger.info(f"Fetched {len(receipts)} receipts from ledger")
        return receipts

    def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> requests.Response:
        """
        リトライ機能付きHTTPリクエスト

        429・5xx・タイムアウトは指数バックオフで再試行、それ以外の失敗は即時エラー

        Raises:
            LedgerStoreError: リトライ後も失敗した場合
        """
        kwargs.setdefault("timeout", self.config.timeout)

        for attempt in range(self.max_retries):
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.exceptions.Timeout:
                logger.warning(f"Request timeout (attempt {attempt + 1}/{self.max_retries})")
            except requests.exceptions.RequestException as e:
                logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}")
            else:
                if response.status_code == 401:
                    raise LedgerStoreError("401 Unauthorized: check ledger store API key")

                if response.status_code == 429 or response.status_code >= 500:
                    logger.warning(
                        f"Ledger store error (HTTP {response.status_code}), "
                        f"attempt {attempt + 1}/{self.max_retries}"
                    )
                else:
                    try:
                        response.raise_for_status()
                    except requests.exceptions.HTTPError as e:
                        raise LedgerStoreError(f"{e}: {response.text}") from e
                    return response

            # 指数バックオフ
            if attempt < self.max_retries - 1:
                time.sleep(2 ** attempt)

        raise LedgerStoreError(f"{method} {url} failed after {self.max_retries} attempts")
