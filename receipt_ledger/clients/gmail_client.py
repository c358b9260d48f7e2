"""
Gmail API クライアント
未読の領収書メールの検索、PDF添付ファイルのダウンロード、既読化
"""

import base64
import logging
import os
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import List, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import MailboxConfig
from ..core.models import Attachment, Message
from ..errors import MailboxError

logger = logging.getLogger(__name__)

# Gmail APIスコープ（既読化のため modify）
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]

# 処理対象のドキュメント拡張子
DOCUMENT_SUFFIXES = (".pdf",)


def is_document_attachment(filename: str, disposition: str) -> bool:
    """
    領収書として処理する添付ファイルか判定

    ファイル名がドキュメント拡張子で終わり、かつ Content-Disposition が
    attachment（inline ではない）の場合のみ対象
    """
    if not filename or not filename.lower().endswith(DOCUMENT_SUFFIXES):
        return False
    disposition_type = (disposition or "").split(";")[0].strip().lower()
    return disposition_type == "attachment"


class GmailClient:
    """Gmail API クライアント"""

    def __init__(self, config: MailboxConfig, service=None):
        """
        Args:
            config: メールボックス設定
            service: 構築済みのGmail APIサービス（テスト用、未指定時は connect() で構築）
        """
        self.config = config
        self.service = service

    def connect(self):
        """
        設定を検証してGmail APIサービスを構築

        Raises:
            MailboxConfigError: 認証情報ファイルがない場合
        """
        if self.service is None:
            self.config.validate()
            self.service = build("gmail", "v1", credentials=self._authenticate())
        return self.service

    def _authenticate(self) -> Credentials:
        """OAuth2認証（保存済みトークン優先、期限切れならリフレッシュ）"""
        creds = None
        token_path = self.config.token_path

        # 既存トークンの読み込み
        if token_path and os.path.exists(token_path):
            try:
                creds = Credentials.from_authorized_user_file(token_path, SCOPES)
                logger.info("Loaded existing Gmail credentials")
            except ValueError as e:
                logger.warning(f"Failed to load existing credentials: {e}")

        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                logger.info("Refreshing expired Gmail token")
                creds.refresh(Request())
            except Exception as e:
                logger.error(f"Failed to refresh token: {e}")
                creds = None

        # 新規OAuth認証フロー
        if not creds or not creds.valid:
            if not os.path.exists(self.config.credentials_path):
                raise MailboxError(
                    f"Gmail token is invalid and no credentials file to re-authorize: "
                    f"{self.config.credentials_path}"
                )
            logger.info("Starting OAuth2 flow (browser will open)")
            flow = InstalledAppFlow.from_client_secrets_file(
                self.config.credentials_path, SCOPES
            )
            creds = flow.run_local_server(port=0)

        # トークン保存
        try:
            Path(token_path).parent.mkdir(parents=True, exist_ok=True)
            with open(token_path, "w") as token:
                token.write(creds.to_json())
            logger.info(f"Saved Gmail credentials to {token_path}")
        except OSError as e:
            logger.warning(f"Failed to save credentials: {e}")

        return creds

    def search_unread_messages(self) -> List[Message]:
        """
        PDF添付ファイル付きの未読メールを検索

        Returns:
            メッセージのリスト（APIの返却順）

        Raises:
            MailboxError: Gmail API エラー
        """
        service = self.connect()

        search_query = "is:unread has:attachment filename:pdf"
        if self.config.query:
            search_query = f"{search_query} {self.config.query}"

        logger.info(f"Searching Gmail with query: {search_query}")

        try:
            message_ids = []
            page_token = None
            while True:
                results = (
                    service.users()
                    .messages()
                    .list(userId="me", q=search_query, maxResults=500, pageToken=page_token)
                    .execute()
                )
                message_ids.extend(results.get("messages", []))
                page_token = results.get("nextPageToken")
                if not page_token:
                    break

            logger.info(f"Found {len(message_ids)} matching messages")

            messages = []
            for msg_ref in message_ids:
                msg_data = (
                    service.users()
                    .messages()
                    .get(userId="me", id=msg_ref["id"], format="metadata")
                    .execute()
                )
                message = self._parse_message(msg_ref["id"], msg_data)
                messages.append(message)
                logger.debug(f"Parsed message: {message}")

            return messages

        except HttpError as e:
            raise MailboxError(f"Gmail API error: {e}") from e

    def _parse_message(self, message_id: str, msg_data: dict) -> Message:
        # ヘッダーから情報抽出
        headers = {
            h["name"].lower(): h["value"]
            for h in msg_data.get("payload", {}).get("headers", [])
        }

        try:
            # RFC 2822形式をパース
            msg_date = parsedate_to_datetime(headers.get("date", ""))
        except (TypeError, ValueError):
            # パース失敗時は内部タイムスタンプ使用
            timestamp_ms = int(msg_data.get("internalDate", 0))
            msg_date = datetime.fromtimestamp(timestamp_ms / 1000)

        return Message(
            id=message_id,
            date=msg_date,
            subject=headers.get("subject", "(No subject)"),
            sender=headers.get("from", "(Unknown)"),
        )

    def get_attachments(self, message_id: str) -> List[Attachment]:
        """
        メッセージからPDF添付ファイルを取得

        Args:
            message_id: メッセージID

        Returns:
            添付ファイルのリスト（MIMEパート順）

        Raises:
            MailboxError: Gmail API エラー
        """
        service = self.connect()
        logger.debug(f"Fetching attachments for message {message_id}")

        try:
            message = (
                service.users()
                .messages()
                .get(userId="me", id=message_id, format="full")
                .execute()
            )

            attachments: List[Attachment] = []
            self._extract_attachments([message.get("payload", {})], message_id, attachments)

            logger.info(f"Found {len(attachments)} attachments in message {message_id}")
            return attachments

        except HttpError as e:
            raise MailboxError(
                f"Failed to fetch attachments for message {message_id}: {e}"
            ) from e

    def _extract_attachments(
        self,
        parts: List[dict],
        message_id: str,
        attachments: List[Attachment],
    ) -> None:
        """
        メッセージパートから添付ファイルを再帰的に抽出

        Args:
            parts: メッセージパートのリスト
            message_id: メッセージID
            attachments: 抽出結果を格納するリスト
        """
        for part in parts:
            filename = part.get("filename", "")
            headers = {h["name"].lower(): h["value"] for h in part.get("headers", [])}
            disposition = headers.get("content-disposition", "")

            if is_document_attachment(filename, disposition):
                data = self._download_part(part, message_id)
                if data is not None:
                    attachments.append(
                        Attachment(
                            filename=filename,
                            data=data,
                            message_id=message_id,
                            disposition="attachment",
                            content_type=part.get("mimeType", "application/pdf"),
                        )
                    )
            elif filename:
                logger.debug(f"Skipping non-document attachment: {filename}")

            # ネストされたパートを再帰処理
            if "parts" in part:
                self._extract_attachments(part["parts"], message_id, attachments)

    def _download_part(self, part: dict, message_id: str) -> Optional[bytes]:
        """パート本文を取得（小さいファイルは body.data に直接含まれる）"""
        body = part.get("body", {})
        attachment_id = body.get("attachmentId")

        if not attachment_id:
            data = body.get("data", "")
            return base64.urlsafe_b64decode(data) if data else None

        attachment = (
            self.service.users()
            .messages()
            .attachments()
            .get(userId="me", messageId=message_id, id=attachment_id)
            .execute()
        )
        data = attachment.get("data", "")
        if not data:
            return None

        file_data = base64.urlsafe_b64decode(data)
        logger.debug(f"Downloaded attachment: {part.get('filename')} ({len(file_data)} bytes)")
        return file_data

    def mark_as_read(self, message_id: str) -> None:
        """
        メッセージを既読にする

        Raises:
            MailboxError: Gmail API エラー
        """
        service = self.connect()
        try:
            service.users().messages().modify(
                userId="me", id=message_id, body={"removeLabelIds": ["UNREAD"]}
            ).execute()
            logger.debug(f"Marked message {message_id} as read")
        except HttpError as e:
            raise MailboxError(f"Failed to mark message {message_id} as read: {e}") from e
