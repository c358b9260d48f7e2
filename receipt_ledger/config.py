"""
設定読み込み
config.yaml と credentials/ の機密情報から各クライアントの設定を組み立てる
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .core.extraction import AmountPolicy
from .errors import ConfigError, MailboxConfigError

logger = logging.getLogger(__name__)


@dataclass
class MailboxConfig:
    """メールボックス（Gmail API）設定"""

    credentials_path: str = "credentials/gmail_credentials.json"
    token_path: str = "credentials/gmail_token.json"
    query: Optional[str] = None  # 追加検索クエリ
    mark_read: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "MailboxConfig":
        defaults = cls()
        return cls(
            credentials_path=data.get("credentials_path") or defaults.credentials_path,
            token_path=data.get("token_path") or defaults.token_path,
            query=data.get("query"),
            mark_read=bool(data.get("mark_read", defaults.mark_read)),
        )

    def validate(self) -> None:
        """
        接続前の検証

        Raises:
            MailboxConfigError: 認証情報が使えない場合
        """
        has_token = bool(self.token_path) and os.path.exists(self.token_path)
        has_credentials = bool(self.credentials_path) and os.path.exists(self.credentials_path)
        if not has_token and not has_credentials:
            raise MailboxConfigError(
                f"Gmail credentials file not found: {self.credentials_path}\n"
                "Please download credentials.json from Google Cloud Console:\n"
                "https://console.cloud.google.com/apis/credentials"
            )


@dataclass
class LedgerStoreConfig:
    """台帳ストア（Supabase REST）設定"""

    url: Optional[str] = None
    api_key: Optional[str] = None
    table: str = "ledger"
    timeout: float = 10.0

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerStoreConfig":
        return cls(
            url=data.get("url"),
            api_key=data.get("api_key"),
            table=data.get("table") or "ledger",
            timeout=float(data.get("timeout", 10.0)),
        )

    def validate(self) -> None:
        if not self.url:
            raise ConfigError("ledger_store.url is not set")
        if not self.api_key:
            raise ConfigError(
                "Ledger store API key not found. Set credentials/ledger_store_key.txt "
                "or LEDGER_STORE_KEY environment variable"
            )


@dataclass
class ExtractionConfig:
    """抽出設定"""

    amount_policy: AmountPolicy = AmountPolicy.FIRST_OCCURRENCE
    max_workers: int = 5
    max_pages: int = 0  # 0 は全ページ

    @classmethod
    def from_dict(cls, data: dict) -> "ExtractionConfig":
        policy = data.get("amount_policy", AmountPolicy.FIRST_OCCURRENCE.value)
        try:
            amount_policy = AmountPolicy(policy)
        except ValueError:
            raise ConfigError(f"Unknown amount_policy: {policy}")

        max_workers = int(data.get("max_workers", 5))
        if max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1: {max_workers}")

        max_pages = int(data.get("max_pages", 0))
        if max_pages < 0:
            raise ConfigError(f"max_pages must be >= 0: {max_pages}")

        return cls(
            amount_policy=amount_policy,
            max_workers=max_workers,
            max_pages=max_pages,
        )


def load_config(config_path: str) -> dict:
    """
    設定ファイル読み込み

    Raises:
        ConfigError: ファイルが存在しない・YAMLとして読めない場合
    """
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(
            f"Config file not found: {config_path} "
            "(create config.yaml from config.yaml.example)"
        )
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    logger.info(f"Loaded config from {config_path}")
    return config


def load_credentials(config: dict) -> None:
    """
    credentials/ または環境変数から台帳ストアのAPIキーを読み込んでconfigにマージ

    Args:
        config: 設定ディクショナリ（in-place更新）
    """
    store_config = config.setdefault("ledger_store", {})
    if store_config.get("api_key"):
        return

    api_key = None

    # 1. credentials_file から読み込み（優先）
    creds_file = store_config.get("credentials_file")
    if creds_file and Path(creds_file).exists():
        try:
            api_key = Path(creds_file).read_text().strip()
            logger.info(f"Loaded ledger store key from {creds_file}")
        except OSError as e:
            logger.warning(f"Failed to load ledger store key from file: {e}")

    # 2. 環境変数から読み込み（フォールバック）
    if not api_key:
        env_name = store_config.get("api_key_env", "LEDGER_STORE_KEY")
        api_key = os.environ.get(env_name)
        if api_key:
            logger.info(f"Loaded ledger store key from environment variable {env_name}")

    if api_key:
        store_config["api_key"] = api_key
