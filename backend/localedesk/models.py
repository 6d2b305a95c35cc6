from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class ProjectModel(_Record):
    id: str
    name: str
    enable_auto_translate: bool = True
    has_translation_api_key: bool = False


class NamespaceModel(_Record):
    id: int
    project_id: str
    name: str


class LanguageModel(_Record):
    id: int
    project_id: str
    code: str
    name: str
    is_base: bool = False
    is_active: bool = True


class TranslationModel(_Record):
    id: int
    key_id: str
    language_code: str
    value: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class HistoryEntryModel(_Record):
    id: int
    key_id: str
    translation_id: Optional[int] = None
    action: str
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    actor: Optional[str] = None
    created_at: Optional[datetime] = None


class TranslationKeyModel(_Record):
    id: str
    project_id: str
    namespace: str
    key: str
    description: str = ""
    status: Literal["confirmed", "unconfirmed"] = "unconfirmed"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    translations: Dict[str, str] = Field(default_factory=dict)
    history: List[HistoryEntryModel] = Field(default_factory=list)


class ApiKeyModel(_Record):
    id: int
    key: str
    name: str
    project_id: str
    user_id: str
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    is_active: bool = True
