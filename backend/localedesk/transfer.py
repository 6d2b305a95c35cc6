"""Import and export of key/translation tables.

Exports take a ``{key: {language: value}}`` table. Imports produce the
same shape, preview it, and merge it into a project by key name.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from localedesk.config import Settings
from localedesk.errors import DomainError, ValidationError
from localedesk.keys import TranslationKeyStore
from localedesk.models import TranslationKeyModel
from localedesk.tables import STATUS_UNCONFIRMED, translation_keys_table

logger = logging.getLogger(__name__)

FORMATS = ("json", "csv", "yaml")
EXPORT_FILENAMES = {
    "json": "translations.zip",
    "csv": "translations.csv",
    "yaml": "translations.yaml",
}
MEDIA_TYPES = {
    "json": "application/zip",
    "csv": "text/csv",
    "yaml": "text/yaml",
}
SAMPLE_SIZE = 3

Table = Dict[str, Dict[str, str]]


def build_table(keys: Iterable[TranslationKeyModel]) -> Table:
    return {item.key: dict(item.translations) for item in keys}


def export_languages(base_language: str, selected: Optional[Iterable[str]]) -> List[str]:
    """Selected codes in order, with the base language forced to the front."""
    codes = [code for code in (selected or []) if code and code != base_language]
    return [base_language, *dict.fromkeys(codes)]


def export_json(table: Table, languages: List[str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for language in languages:
            data = {key: values.get(language, "") for key, values in table.items()}
            archive.writestr(
                f"{language}/common.json",
                json.dumps(data, ensure_ascii=False, indent=2),
            )
    return buffer.getvalue()


def _csv_field(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def export_csv(table: Table, languages: List[str]) -> str:
    header = ",".join(["key", *languages])
    rows = [
        ",".join(
            [_csv_field(key)]
            + [_csv_field(values.get(language) or "") for language in languages]
        )
        for key, values in table.items()
    ]
    return "\n".join([header, *rows])


def export_yaml(table: Table, languages: List[str]) -> str:
    lines: List[str] = []
    for key, values in table.items():
        lines.append(f"{key}:")
        for language in languages:
            value = (values.get(language) or "").replace('"', '\\"')
            lines.append(f'  {language}: "{value}"')
    return "\n".join(lines)


def export_table(table: Table, languages: List[str], fmt: str) -> bytes:
    if fmt == "json":
        return export_json(table, languages)
    if fmt == "csv":
        return export_csv(table, languages).encode("utf-8")
    if fmt == "yaml":
        return export_yaml(table, languages).encode("utf-8")
    raise ValidationError(f"Unsupported export format: {fmt}")


def _parse_json_object(data: object) -> Table:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON format")
    table: Table = {}
    for key, values in data.items():
        if not isinstance(values, dict):
            raise ValidationError(f"Entry {key!r} must map language codes to text.")
        table[str(key)] = {
            str(language): "" if value is None else str(value)
            for language, value in values.items()
        }
    return table


def _parse_json_archive(raw: bytes) -> Table:
    table: Table = {}
    try:
        with zipfile.ZipFile(io.BytesIO(raw)) as archive:
            for name in sorted(archive.namelist()):
                parts = name.strip("/").split("/")
                if len(parts) != 2 or not parts[1].endswith(".json"):
                    continue
                language = parts[0]
                data = json.loads(archive.read(name).decode("utf-8"))
                if not isinstance(data, dict):
                    raise ValidationError(f"{name} must contain a JSON object.")
                for key, value in data.items():
                    table.setdefault(str(key), {})[language] = "" if value is None else str(value)
    except zipfile.BadZipFile as exc:
        raise ValidationError("Invalid archive") from exc
    return table


def parse_json(raw: bytes) -> Table:
    if raw[:2] == b"PK":
        return _parse_json_archive(raw)
    try:
        data = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ValidationError(f"Error parsing file: {exc}") from exc
    return _parse_json_object(data)


def parse_csv(raw: bytes) -> Table:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError(f"Error parsing file: {exc}") from exc
    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise ValidationError("CSV file must have at least a header row and one data row")
    headers = [cell.strip() for cell in rows[0]]
    if len(headers) < 2 or headers[0] != "key":
        raise ValidationError("CSV header must start with 'key' followed by language codes")
    table: Table = {}
    for row in rows[1:]:
        key = row[0].strip()
        if not key:
            continue
        table[key] = {
            language: (row[index] if index < len(row) else "")
            for index, language in enumerate(headers[1:], start=1)
        }
    return table


def parse_import(raw: bytes, fmt: str) -> Table:
    if fmt == "json":
        return parse_json(raw)
    if fmt == "csv":
        return parse_csv(raw)
    if fmt == "yaml":
        raise ValidationError(
            "YAML parsing is not fully implemented. Please use JSON or CSV format."
        )
    raise ValidationError(f"Unsupported import format: {fmt}")


@dataclass
class ImportPreview:
    key_count: int
    detected_languages: List[str]
    sample_entries: Dict[str, str]
    data: Table = field(repr=False, default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "keyCount": self.key_count,
            "detectedLanguages": list(self.detected_languages),
            "sampleEntries": dict(self.sample_entries),
        }


def preview(table: Table, base_language: str) -> ImportPreview:
    detected: Dict[str, None] = {}
    for values in table.values():
        for language in values:
            detected.setdefault(language, None)
    samples: Dict[str, str] = {}
    for key in list(table)[:SAMPLE_SIZE]:
        text = table[key].get(base_language)
        if text:
            samples[key] = text
    return ImportPreview(
        key_count=len(table),
        detected_languages=list(detected),
        sample_entries=samples,
        data=table,
    )


def commit(
    session: Session,
    settings: Settings,
    project_id: str,
    table: Table,
    namespace: Optional[str] = None,
    actor: Optional[str] = None,
) -> dict:
    """Merge ``table`` into the project by key name.

    Empty imported values never overwrite stored ones. Every touched key
    ends up unconfirmed.
    """
    store = TranslationKeyStore(session, settings)
    namespace = namespace or settings.default_namespace
    base = store.languages.base_code(project_id)
    report: dict = {"created": 0, "updated": 0, "failed": 0, "errors": []}
    for key, values in table.items():
        filled = {language: text for language, text in values.items() if (text or "").strip()}
        try:
            with session.begin_nested():
                key_id = store.find(project_id, namespace, key)
                if key_id is None:
                    store.create(
                        project_id,
                        key,
                        base_text=filled.get(base, ""),
                        translations=filled,
                        namespace=namespace,
                        actor=actor,
                    )
                    report["created"] += 1
                    continue
                for language, text in filled.items():
                    store.values.upsert(key_id, language, text, actor)
                session.execute(
                    update(translation_keys_table)
                    .where(translation_keys_table.c.id == key_id)
                    .values(status=STATUS_UNCONFIRMED)
                )
                report["updated"] += 1
        except DomainError as exc:
            report["failed"] += 1
            report["errors"].append({"key": key, "error": exc.message})
    logger.info(
        "Import into project_id=%s namespace=%s created=%s updated=%s failed=%s",
        project_id,
        namespace,
        report["created"],
        report["updated"],
        report["failed"],
    )
    return report
