"""
例外定義
抽出フィールド欠落はエラーではなく "Unknown" で表現する
"""


class ReceiptLedgerError(Exception):
    """receipt-ledger の基底例外"""


class ConfigError(ReceiptLedgerError):
    """設定ファイルの読み込み・検証エラー"""


class MailboxConfigError(ConfigError):
    """メールボックス接続設定が不正"""


class MailboxError(ReceiptLedgerError):
    """メールボックスAPI呼び出しの失敗"""


class DocumentDecodeError(ReceiptLedgerError):
    """添付ドキュメントをテキスト化できない（破損・非対応形式）"""


class LedgerStoreError(ReceiptLedgerError):
    """台帳ストアへの読み書き失敗

    stored には失敗前に保存できた領収書が入る
    """

    def __init__(self, message: str = "", stored=None):
        super().__init__(message)
        self.stored = list(stored or [])
