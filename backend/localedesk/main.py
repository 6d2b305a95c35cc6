from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
import logging

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    FastAPI,
    File,
    Form,
    Header,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from localedesk import i18n_docs, transfer
from localedesk.api_keys import ApiKeyStore
from localedesk.auto_translate import AutoTranslator
from localedesk.config import Settings, configure_logging, validate_environment
from localedesk.database import Database, create_database
from localedesk.errors import AuthError, DomainError
from localedesk.events import EventBus, LanguageAdded
from localedesk.gateway import AutoTranslateGateway, build_provider
from localedesk.history import HistoryLog
from localedesk.keys import TranslationKeyStore
from localedesk.languages import LanguageRegistry
from localedesk.models import (
    ApiKeyModel,
    HistoryEntryModel,
    LanguageModel,
    NamespaceModel,
    ProjectModel,
    TranslationKeyModel,
)
from localedesk.namespaces import NamespaceStore
from localedesk.projects import ProjectStore
from localedesk.updates import apply_update, parse_update
from localedesk.values import TranslationValueStore

logger = logging.getLogger(__name__)

PUBLIC_CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, Project-ID",
    "Access-Control-Max-Age": "86400",
}


@dataclass
class Services:
    settings: Settings
    database: Database
    gateway: AutoTranslateGateway
    bus: EventBus
    auto_translator: AutoTranslator


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)


class ProjectSettingsUpdate(BaseModel):
    name: Optional[str] = None
    translation_api_key: Optional[str] = Field(
        None, description="Machine translation secret; empty string clears it"
    )
    enable_auto_translate: Optional[bool] = None


class CredentialTest(BaseModel):
    credential: Optional[str] = None


class LanguageCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=32)
    name: str


class LanguageUpdate(BaseModel):
    name: str


class NamespaceCreate(BaseModel):
    name: str


class KeyCreate(BaseModel):
    key: str
    description: str = ""
    base_text: Optional[str] = None
    translations: Dict[str, str] = Field(default_factory=dict)
    namespace: Optional[str] = None


class KeyUpdate(BaseModel):
    field: str = Field(..., description="key, description or a language code")
    value: Optional[str] = None


class BulkDelete(BaseModel):
    ids: List[str]


class TranslationUpsert(BaseModel):
    language: str = Field(..., description="Language code")
    value: Optional[str] = Field(None, description="Translated phrase")


class AutoTranslateRequest(BaseModel):
    targets: Optional[List[str]] = None
    credential: Optional[str] = None


class BulkAutoTranslateRequest(BaseModel):
    languages: List[str] = Field(..., min_length=1)


class ApiKeyCreate(BaseModel):
    name: str


security_scheme = HTTPBearer(auto_error=False)
router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def db_session_dependency(services: Services = Depends(get_services)) -> Iterable[Session]:
    with services.database.get_session() as session:
        yield session


def current_actor(x_user: Optional[str] = Header(None)) -> str:
    return (x_user or "").strip() or "user"


def bootstrap_project(session: Session, settings: Settings, project_id: str) -> None:
    LanguageRegistry(session, settings).ensure_base(project_id)
    NamespaceStore(session).ensure(project_id, settings.default_namespace)


def _bootstrap_database(services: Services) -> None:
    services.database.create_all()
    with services.database.get_session() as session:
        project = ProjectStore(session, services.settings).ensure_default()
        bootstrap_project(session, services.settings, project.id)
    logger.info("Default project ready id=%s", project.id)


def _keys_in_project(
    session: Session, services: Services, project_id: str, key_id: str
) -> TranslationKeyStore:
    store = TranslationKeyStore(session, services.settings)
    store.ensure_in_project(key_id, project_id)
    return store


def _public_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=PUBLIC_CORS_HEADERS)


def _public_translations(
    session: Session,
    services: Services,
    credentials: Optional[HTTPAuthorizationCredentials],
    project_id: Optional[str],
    locale: str,
    namespace: str,
) -> Response:
    if credentials is None or not credentials.credentials or not project_id:
        return _public_error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
    try:
        ApiKeyStore(session, services.settings).authenticate(credentials.credentials, project_id)
    except AuthError as exc:
        return _public_error(exc.status_code, exc.message)
    data = TranslationValueStore(session, services.settings).map_for(project_id, namespace, locale)
    return JSONResponse(data, headers=PUBLIC_CORS_HEADERS)


# Public read API


@router.options("/api/translations")
async def translations_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=PREFLIGHT_HEADERS)


@router.get("/api/translations")
async def read_translations(
    namespace: str = Query("default"),
    locale: str = Query("en"),
    project_id: Optional[str] = Header(None, alias="Project-ID"),
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> Response:
    return _public_translations(session, services, credentials, project_id, locale, namespace)


@router.get("/api/translations/{locale}/{namespace}")
async def read_translations_by_path(
    locale: str,
    namespace: str,
    project_id: Optional[str] = Header(None, alias="Project-ID"),
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> Response:
    return _public_translations(session, services, credentials, project_id, locale, namespace)


@router.get("/api/health")
async def health(services: Services = Depends(get_services)) -> JSONResponse:
    settings = services.settings
    database_status = services.database.ping()
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
            "envValid": validate_environment(settings),
            "database": database_status,
            # Field name older monitors poll.
            "supabase": database_status,
            "version": settings.app_version,
        },
        headers={"Cache-Control": "no-store, max-age=0"},
    )


@router.get("/api/docs/i18n")
async def i18n_documentation() -> dict:
    return i18n_docs.documentation()


# Projects and settings


@router.get("/admin/projects", response_model=List[ProjectModel])
async def list_projects(
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[ProjectModel]:
    return ProjectStore(session, services.settings).list()


@router.post("/admin/projects", response_model=ProjectModel, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> ProjectModel:
    project = ProjectStore(session, services.settings).create(payload.name)
    bootstrap_project(session, services.settings, project.id)
    return project


@router.get("/admin/projects/{project_id}", response_model=ProjectModel)
async def get_project(
    project_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> ProjectModel:
    return ProjectStore(session, services.settings).get(project_id)


@router.get("/admin/projects/{project_id}/settings")
async def get_project_settings(
    project_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    return ProjectStore(session, services.settings).settings(project_id)


@router.put("/admin/projects/{project_id}/settings")
async def update_project_settings(
    project_id: str,
    payload: ProjectSettingsUpdate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    store = ProjectStore(session, services.settings)
    store.update_settings(
        project_id,
        name=payload.name,
        translation_api_key=payload.translation_api_key,
        enable_auto_translate=payload.enable_auto_translate,
    )
    return store.settings(project_id)


@router.post("/admin/projects/{project_id}/settings/test-credential")
def test_project_credential(
    project_id: str,
    payload: CredentialTest,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    ProjectStore(session, services.settings).get(project_id)
    credential = services.auto_translator.resolve_credential(session, project_id, payload.credential)
    return services.gateway.test_credential(credential).as_dict()


@router.get("/admin/projects/{project_id}/activity", response_model=List[HistoryEntryModel])
async def project_activity(
    project_id: str,
    limit: int = Query(50, ge=1, le=500),
    action: Optional[str] = Query(None),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[HistoryEntryModel]:
    ProjectStore(session, services.settings).get(project_id)
    return HistoryLog(session).recent(project_id, limit=limit, action=action)


# Languages


@router.get("/admin/projects/{project_id}/languages", response_model=List[LanguageModel])
async def list_languages(
    project_id: str,
    include_inactive: bool = Query(False),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[LanguageModel]:
    ProjectStore(session, services.settings).get(project_id)
    return LanguageRegistry(session, services.settings).list(project_id, include_inactive)


@router.post(
    "/admin/projects/{project_id}/languages",
    response_model=LanguageModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_language(
    project_id: str,
    payload: LanguageCreate,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> LanguageModel:
    # Committed before the response so the background translation sees the row.
    with services.database.get_session() as session:
        ProjectStore(session, services.settings).get(project_id)
        language = LanguageRegistry(session, services.settings).add(
            project_id, payload.code, payload.name
        )
    background_tasks.add_task(
        services.bus.language_added.publish,
        LanguageAdded(project_id=project_id, code=language.code, name=language.name),
    )
    return language


@router.put("/admin/projects/{project_id}/languages/{language_id}", response_model=LanguageModel)
async def update_language(
    project_id: str,
    language_id: int,
    payload: LanguageUpdate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> LanguageModel:
    registry = LanguageRegistry(session, services.settings)
    if registry.get(language_id).project_id != project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Language not found.")
    return registry.update(language_id, payload.name)


@router.delete(
    "/admin/projects/{project_id}/languages/{language_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_language(
    project_id: str,
    language_id: int,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> Response:
    registry = LanguageRegistry(session, services.settings)
    if registry.get(language_id).project_id != project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Language not found.")
    registry.remove(language_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/admin/projects/{project_id}/auto-translate")
def auto_translate_project(
    project_id: str,
    payload: BulkAutoTranslateRequest,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    ProjectStore(session, services.settings).get(project_id)
    return services.auto_translator.translate_project_into(session, project_id, payload.languages)


# Namespaces


@router.get("/admin/projects/{project_id}/namespaces", response_model=List[NamespaceModel])
async def list_namespaces(
    project_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[NamespaceModel]:
    ProjectStore(session, services.settings).get(project_id)
    return NamespaceStore(session).list(project_id)


@router.post(
    "/admin/projects/{project_id}/namespaces",
    response_model=NamespaceModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_namespace(
    project_id: str,
    payload: NamespaceCreate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> NamespaceModel:
    ProjectStore(session, services.settings).get(project_id)
    return NamespaceStore(session).create(project_id, payload.name)


@router.delete(
    "/admin/projects/{project_id}/namespaces/{name}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_namespace(
    project_id: str,
    name: str,
    session: Session = Depends(db_session_dependency),
) -> Response:
    NamespaceStore(session).delete(project_id, name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Keys and translations


@router.get("/admin/projects/{project_id}/keys", response_model=List[TranslationKeyModel])
async def list_keys(
    project_id: str,
    namespace: Optional[str] = Query(None),
    key_status: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[TranslationKeyModel]:
    ProjectStore(session, services.settings).get(project_id)
    return TranslationKeyStore(session, services.settings).list(
        project_id, namespace=namespace, status=key_status, search=search
    )


@router.post(
    "/admin/projects/{project_id}/keys",
    response_model=TranslationKeyModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_key(
    project_id: str,
    payload: KeyCreate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> TranslationKeyModel:
    ProjectStore(session, services.settings).get(project_id)
    store = TranslationKeyStore(session, services.settings)
    base_text = payload.base_text
    if base_text is None:
        base_text = payload.translations.get(store.languages.base_code(project_id), "")
    return store.create(
        project_id,
        payload.key,
        description=payload.description,
        base_text=base_text,
        translations=payload.translations,
        namespace=payload.namespace,
        actor=actor,
    )


@router.post("/admin/projects/{project_id}/keys/bulk-delete")
async def bulk_delete_keys(
    project_id: str,
    payload: BulkDelete,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> dict:
    store = TranslationKeyStore(session, services.settings)
    return store.delete_many(payload.ids, actor, project_id=project_id)


@router.get("/admin/projects/{project_id}/keys/{key_id}", response_model=TranslationKeyModel)
async def get_key(
    project_id: str,
    key_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> TranslationKeyModel:
    return _keys_in_project(session, services, project_id, key_id).get(key_id)


@router.patch("/admin/projects/{project_id}/keys/{key_id}", response_model=TranslationKeyModel)
async def update_key(
    project_id: str,
    key_id: str,
    payload: KeyUpdate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> TranslationKeyModel:
    store = _keys_in_project(session, services, project_id, key_id)
    try:
        command = parse_update(payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return apply_update(store, key_id, command, actor)


@router.post(
    "/admin/projects/{project_id}/keys/{key_id}/confirm",
    response_model=TranslationKeyModel,
)
async def confirm_key(
    project_id: str,
    key_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> TranslationKeyModel:
    return _keys_in_project(session, services, project_id, key_id).confirm(key_id, actor)


@router.delete(
    "/admin/projects/{project_id}/keys/{key_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_key(
    project_id: str,
    key_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> Response:
    _keys_in_project(session, services, project_id, key_id).delete(key_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/admin/projects/{project_id}/keys/{key_id}/history",
    response_model=List[HistoryEntryModel],
)
async def key_history(
    project_id: str,
    key_id: str,
    limit: Optional[int] = Query(None, ge=1),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> List[HistoryEntryModel]:
    ProjectStore(session, services.settings).get(project_id)
    # Deleted keys keep their trail, so no key lookup here.
    return HistoryLog(session).for_key(key_id, limit=limit, project_id=project_id)


@router.put(
    "/admin/projects/{project_id}/keys/{key_id}/translations",
    response_model=TranslationKeyModel,
)
async def upsert_translation(
    project_id: str,
    key_id: str,
    payload: TranslationUpsert,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> TranslationKeyModel:
    store = _keys_in_project(session, services, project_id, key_id)
    store.values.upsert(key_id, payload.language, payload.value, actor)
    return store.get(key_id)


@router.post("/admin/projects/{project_id}/keys/{key_id}/auto-translate")
def auto_translate_key(
    project_id: str,
    key_id: str,
    payload: AutoTranslateRequest,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    _keys_in_project(session, services, project_id, key_id)
    result = services.auto_translator.translate_key(
        session, key_id, targets=payload.targets, credential=payload.credential
    )
    return result.as_dict()


# API keys


@router.get("/admin/projects/{project_id}/api-keys", response_model=List[ApiKeyModel])
async def list_api_keys(
    project_id: str,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> List[ApiKeyModel]:
    return ApiKeyStore(session, services.settings).list(project_id, actor)


@router.post(
    "/admin/projects/{project_id}/api-keys",
    response_model=ApiKeyModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_api_key(
    project_id: str,
    payload: ApiKeyCreate,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> ApiKeyModel:
    ProjectStore(session, services.settings).get(project_id)
    return ApiKeyStore(session, services.settings).generate(project_id, actor, payload.name)


@router.delete(
    "/admin/projects/{project_id}/api-keys/{api_key_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_api_key(
    project_id: str,
    api_key_id: int,
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> Response:
    ApiKeyStore(session, services.settings).delete(api_key_id, actor, project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Import / export


@router.post("/admin/projects/{project_id}/import/preview")
async def import_preview(
    project_id: str,
    file_format: str = Form("json", alias="format"),
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> dict:
    ProjectStore(session, services.settings).get(project_id)
    base = LanguageRegistry(session, services.settings).base_code(project_id)
    table = transfer.parse_import(await file.read(), file_format)
    return transfer.preview(table, base).as_dict()


@router.post("/admin/projects/{project_id}/import")
async def import_commit(
    project_id: str,
    file_format: str = Form("json", alias="format"),
    namespace: Optional[str] = Form(None),
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
    actor: str = Depends(current_actor),
) -> dict:
    ProjectStore(session, services.settings).get(project_id)
    table = transfer.parse_import(await file.read(), file_format)
    return transfer.commit(session, services.settings, project_id, table, namespace, actor)


@router.get("/admin/projects/{project_id}/export")
async def export_translations(
    project_id: str,
    file_format: str = Query("json", alias="format"),
    languages: Optional[str] = Query(None, description="Comma-separated language codes"),
    namespace: Optional[str] = Query(None),
    services: Services = Depends(get_services),
    session: Session = Depends(db_session_dependency),
) -> StreamingResponse:
    ProjectStore(session, services.settings).get(project_id)
    registry = LanguageRegistry(session, services.settings)
    if languages:
        selected = [code.strip() for code in languages.split(",") if code.strip()]
    else:
        selected = registry.active_codes(project_id)
    codes = transfer.export_languages(registry.base_code(project_id), selected)
    keys = TranslationKeyStore(session, services.settings).list(project_id, namespace=namespace)
    content = transfer.export_table(transfer.build_table(keys), codes, file_format)
    filename = transfer.EXPORT_FILENAMES[file_format]
    return StreamingResponse(
        iter([content]),
        media_type=transfer.MEDIA_TYPES[file_format],
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    gateway: Optional[AutoTranslateGateway] = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)
    validate_environment(settings)
    database = database or create_database(settings.database_url)
    gateway = gateway or AutoTranslateGateway(build_provider(settings))
    bus = EventBus()
    auto_translator = AutoTranslator(settings, gateway, bus)
    auto_translator.subscribe(database)
    services = Services(
        settings=settings,
        database=database,
        gateway=gateway,
        bus=bus,
        auto_translator=auto_translator,
    )

    app = FastAPI(title="Localedesk API", version=settings.app_version)
    app.state.services = services

    @app.on_event("startup")
    def on_startup() -> None:
        _bootstrap_database(services)

    cors_origins = list(settings.cors_origins or [])
    allow_all_origins = "*" in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all_origins else cors_origins,
        allow_credentials=not allow_all_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("localedesk.main:create_app", factory=True, host="0.0.0.0", port=8000)
