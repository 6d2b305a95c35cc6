from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


class DomainError(Exception):
    """Base class for errors surfaced to dashboard users."""

    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(DomainError):
    status_code = 422
    default_message = "Invalid input."


class EmptyKeyName(ValidationError):
    default_message = "Key name cannot be empty."


class EmptyBaseText(ValidationError):
    default_message = "Base language text cannot be empty."


class InvalidLanguageCode(ValidationError):
    default_message = "Language code is malformed."


class EmptyName(ValidationError):
    default_message = "Name cannot be empty."


class DuplicateCode(DomainError):
    status_code = 409
    default_message = "Language already exists."


class DuplicateKey(DomainError):
    status_code = 409
    default_message = "Translation key already exists in this namespace."


class DuplicateNamespace(DomainError):
    status_code = 409
    default_message = "Namespace already exists."


class BaseLanguageProtected(DomainError):
    default_message = "Base language cannot be removed."


class NamespaceNotEmpty(DomainError):
    default_message = "Namespace still contains translation keys."


class NotFound(DomainError):
    status_code = 404
    default_message = "Not found."


class AuthError(DomainError):
    status_code = 401
    default_message = "Unauthorized"


class MissingCredential(AuthError):
    default_message = (
        "Machine translation API key is not configured. "
        "Add it in Settings > API first."
    )


class InvalidApiKey(AuthError):
    default_message = "Invalid API key"


class NetworkError(DomainError):
    status_code = 502
    default_message = "Upstream request failed."


@dataclass
class PartialFailureError:
    """Per-language failures of one auto-translate call; recorded, not raised."""

    failures: Dict[str, str] = field(default_factory=dict)

    def add(self, language: str, message: str) -> None:
        self.failures[language] = message

    def __bool__(self) -> bool:
        return bool(self.failures)
