from __future__ import annotations

import re
from typing import Iterable, List

from openai import OpenAI

PLACEHOLDER_RE = re.compile(r"\{\{\s*\w+\s*\}\}")


def find_placeholders(text: str) -> List[str]:
    return PLACEHOLDER_RE.findall(text or "")


class AITranslator:
    """Chat-completions translator for any OpenAI compatible endpoint."""

    def __init__(self, base_url: str | None, model: str, timeout: float = 30.0):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout

    def _client(self, credential: str) -> OpenAI:
        return OpenAI(base_url=self.base_url, api_key=credential, timeout=self.timeout)

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: str,
        placeholders: Iterable[str] = (),
    ) -> str:
        if not text:
            return text
        sys = (
            "You are a precise translator for software UI strings. "
            "Strict rules: 1) Keep placeholders like {{name}} exactly unchanged. "
            "2) Return only the translated text without quotes."
        )
        found = set(placeholders) or set(find_placeholders(text))
        extra = f"Placeholders to preserve: {', '.join(sorted(found))}. " if found else ""
        prompt = (
            f"Source language: {source_language}. Target language: {target_language}. "
            f"{extra}Text to translate:\n{text}"
        )
        resp = self._client(credential).chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": sys},
                {"role": "user", "content": prompt},
            ],
            temperature=0.2,
        )
        out = resp.choices[0].message.content or ""
        return re.sub(r"<think>.*?</think>", "", out, flags=re.DOTALL).strip()
