#!/usr/bin/env python3
"""
Machine-translate every key of a project into the given languages via the admin API.

Usage:
  python scripts/run_bulk_auto_translate.py \
    --base-url http://localhost:8000 \
    --project-id <PROJECT_ID> \
    --languages fr,de
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import urllib.error
import urllib.request


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run bulk auto-translation for a project.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--base-url",
        default=os.getenv("LOCALEDESK_BASE_URL", "http://localhost:8000"),
        help="Backend API base URL.",
    )
    parser.add_argument(
        "--project-id",
        default=os.getenv("LOCALEDESK_PROJECT_ID"),
        help="Project whose keys are translated.",
    )
    parser.add_argument(
        "--languages",
        required=True,
        help="Comma-separated target language codes.",
    )
    parser.add_argument(
        "--user",
        default=os.getenv("LOCALEDESK_USER", "maintenance"),
        help="Value sent as the X-User header.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=600.0,
        help="Request timeout in seconds.",
    )
    return parser.parse_args(argv)


def parse_languages(raw: str) -> list[str]:
    return [code.strip() for code in raw.split(",") if code.strip()]


def post_json(url: str, payload: dict, *, user: str, timeout: float) -> dict:
    body = json.dumps(payload).encode("utf-8")
    request = urllib.request.Request(url, data=body, method="POST")
    request.add_header("Content-Type", "application/json")
    request.add_header("X-User", user)
    with urllib.request.urlopen(request, timeout=timeout) as response:
        text = response.read().decode("utf-8")
    if not text:
        return {}
    return json.loads(text)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    project_id = (args.project_id or "").strip()
    if not project_id:
        print("Missing --project-id (or LOCALEDESK_PROJECT_ID).", file=sys.stderr)
        return 2
    languages = parse_languages(args.languages)
    if not languages:
        print("--languages must name at least one language code.", file=sys.stderr)
        return 2

    base_url = args.base_url.rstrip("/")
    try:
        result = post_json(
            f"{base_url}/admin/projects/{project_id}/auto-translate",
            {"languages": languages},
            user=args.user,
            timeout=args.timeout,
        )
    except urllib.error.HTTPError as exc:
        details = exc.read().decode("utf-8", errors="replace")
        print(f"HTTP {exc.code}: {details}", file=sys.stderr)
        return 1
    except urllib.error.URLError as exc:
        print(f"Network error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0 if not result.get("failed") else 1


if __name__ == "__main__":
    raise SystemExit(main())
