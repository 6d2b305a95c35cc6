from __future__ import annotations

import html
import logging

import requests

from localedesk.errors import AuthError, NetworkError

logger = logging.getLogger(__name__)


class GoogleTranslateProvider:
    """Cloud Translation REST v2; the credential travels as the ``key`` query param."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.http = session or requests.Session()

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: str,
    ) -> str:
        if not text:
            return text
        try:
            resp = self.http.post(
                self.url,
                params={"key": credential},
                json={
                    "q": text,
                    "source": source_language,
                    "target": target_language,
                    "format": "text",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"Translation request failed: {exc}") from exc
        if resp.status_code in (401, 403):
            raise AuthError("Machine translation API key was rejected.")
        if resp.status_code >= 400:
            raise NetworkError(f"Translation provider returned {resp.status_code}")
        try:
            data = resp.json()
            translated = data["data"]["translations"][0]["translatedText"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise NetworkError("Unexpected translation provider response.") from exc
        return html.unescape(translated or "")
