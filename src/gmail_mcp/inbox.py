"""
Gmail inbox access over the Gmail REST API.

Needs the full OAuth2 credential set (client id and secret, redirect URI,
refresh token). Every method is blocking; the server calls them with
asyncio.to_thread.
"""

import base64
import logging
import re
from typing import Any, Dict, List, Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import GmailConfig
from .errors import ConfigurationMissing, InboxFailure

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
MAX_LIST_RESULTS = 100
SUMMARY_HEADERS = ["From", "Subject", "Date"]


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data.encode("ascii")).decode("utf-8", errors="replace")


def extract_body(payload: Dict[str, Any]) -> str:
    """
    Pull a readable body out of a Gmail message payload.

    Prefers text/plain anywhere in the MIME tree, falls back to text/html
    with tags stripped.
    """
    def find(part: Dict[str, Any], mime_type: str) -> Optional[str]:
        data = part.get("body", {}).get("data")
        if part.get("mimeType") == mime_type and data:
            return _decode(data)
        for child in part.get("parts", []) or []:
            found = find(child, mime_type)
            if found:
                return found
        return None

    text = find(payload, "text/plain")
    if text is not None:
        return text

    html = find(payload, "text/html")
    if html is not None:
        html = re.sub(r"<[^>]+>", "", html)
        return re.sub(r"\s+", " ", html).strip()

    # single-part messages without a recognised mimeType
    data = payload.get("body", {}).get("data")
    return _decode(data) if data else ""


def _headers(payload: Dict[str, Any]) -> Dict[str, str]:
    return {h["name"].lower(): h["value"] for h in payload.get("headers", [])}


class GmailInbox:
    """Read and tidy the authenticated user's mailbox"""

    def __init__(self, config: GmailConfig):
        self.config = config
        self._service = None

    @property
    def service(self):
        if self._service is None:
            missing = self.config.missing_oauth()
            if missing:
                raise ConfigurationMissing(
                    missing,
                    "OAuth2 environment variables missing. Provide "
                    "GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET, GMAIL_REDIRECT_URI, "
                    "GMAIL_REFRESH_TOKEN to use this tool.",
                )
            credentials = Credentials(
                token=None,
                refresh_token=self.config.refresh_token,
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
                token_uri=TOKEN_URI,
                scopes=SCOPES,
            )
            self._service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        return self._service

    def _messages(self):
        return self.service.users().messages()

    def _execute(self, request, action: str) -> Dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            reason = e.reason if getattr(e, "reason", None) else str(e)
            raise InboxFailure(f"Gmail API error while trying to {action}: {reason}")
        except RefreshError as e:
            raise InboxFailure(
                f"Gmail authentication failed while trying to {action}: {e}. "
                "Check GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET and GMAIL_REFRESH_TOKEN."
            )
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            raise InboxFailure(f"Could not reach Gmail while trying to {action}: {e}")

    def list_labels(self) -> List[Dict[str, Any]]:
        response = self._execute(
            self.service.users().labels().list(userId="me"), "list labels"
        )
        labels = [
            {"id": label["id"], "name": label["name"], "type": label.get("type", "user")}
            for label in response.get("labels", [])
        ]
        return sorted(labels, key=lambda label: label["name"].lower())

    def list_unread(self, query: Optional[str] = None, max_results: int = 5) -> List[Dict[str, Any]]:
        """
        List unread messages with their summary headers.

        Args:
            query: Extra Gmail search terms appended to "is:unread"
            max_results: Number of messages to return (1-100)
        """
        q = "is:unread"
        if query and query.strip():
            q = f"{q} {query.strip()}"
        max_results = max(1, min(int(max_results), MAX_LIST_RESULTS))

        response = self._execute(
            self._messages().list(userId="me", q=q, maxResults=max_results),
            "list unread emails",
        )

        items = []
        for ref in response.get("messages", []):
            detail = self._execute(
                self._messages().get(
                    userId="me",
                    id=ref["id"],
                    format="metadata",
                    metadataHeaders=SUMMARY_HEADERS,
                ),
                f"read email {ref['id']}",
            )
            headers = _headers(detail.get("payload", {}))
            items.append({
                "id": detail.get("id", ref["id"]),
                "threadId": detail.get("threadId"),
                "from": headers.get("from", ""),
                "subject": headers.get("subject", "(no subject)"),
                "date": headers.get("date", ""),
                "snippet": detail.get("snippet", ""),
            })
        logger.info(f"Listed {len(items)} unread emails (q={q!r})")
        return items

    def get_email(self, message_id: str) -> Dict[str, Any]:
        data = self._execute(
            self._messages().get(userId="me", id=message_id, format="full"),
            f"read email {message_id}",
        )
        payload = data.get("payload", {})
        headers = _headers(payload)
        return {
            "id": data.get("id", message_id),
            "threadId": data.get("threadId"),
            "labelIds": data.get("labelIds", []),
            "from": headers.get("from", ""),
            "to": headers.get("to", ""),
            "cc": headers.get("cc", ""),
            "subject": headers.get("subject", "(no subject)"),
            "date": headers.get("date", ""),
            "snippet": data.get("snippet", ""),
            "body": extract_body(payload),
        }

    def archive_email(self, message_id: str) -> Dict[str, Any]:
        data = self._execute(
            self._messages().modify(
                userId="me", id=message_id, body={"removeLabelIds": ["INBOX"]}
            ),
            f"archive email {message_id}",
        )
        logger.info(f"Archived email {message_id}")
        return {"id": data.get("id", message_id), "archived": True, "labelIds": data.get("labelIds", [])}

    def delete_email(self, message_id: str) -> Dict[str, Any]:
        data = self._execute(
            self._messages().trash(userId="me", id=message_id),
            f"delete email {message_id}",
        )
        logger.info(f"Moved email {message_id} to trash")
        return {"id": data.get("id", message_id), "trashed": True}
