from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    text,
)

metadata = MetaData()

STATUS_CONFIRMED = "confirmed"
STATUS_UNCONFIRMED = "unconfirmed"

projects_table = Table(
    "projects",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", Text, nullable=False),
    # Machine-translation provider secret, never exposed by list endpoints.
    Column("translation_api_key", Text, nullable=True),
    Column("enable_auto_translate", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()),
)
namespaces_table = Table(
    "namespaces",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("project_id", String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(128), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("project_id", "name", name="uq_namespaces_project_name"),
)
languages_table = Table(
    "languages",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("project_id", String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    Column("code", String(32), nullable=False),
    Column("name", Text, nullable=False),
    Column("is_base", Boolean, nullable=False, server_default=text("false")),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("project_id", "code", name="uq_languages_project_code"),
)
translation_keys_table = Table(
    "translation_keys",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("project_id", String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    Column("namespace", String(128), nullable=False, server_default="default"),
    Column("key", Text, nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("status", String(32), nullable=False, server_default=STATUS_UNCONFIRMED),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("created_by", Text),
    Column("updated_by", Text),
    UniqueConstraint("project_id", "namespace", "key", name="uq_translation_keys_namespace_key"),
)
translations_table = Table(
    "translations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("key_id", String(64), ForeignKey("translation_keys.id", ondelete="CASCADE"), nullable=False),
    Column("language_code", String(32), nullable=False),
    Column("value", Text, nullable=False, server_default=""),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("created_by", Text),
    Column("updated_by", Text),
    UniqueConstraint("key_id", "language_code", name="uq_translations_key_language"),
)
# key_id carries no foreign key: the audit trail outlives deleted keys.
translation_history_table = Table(
    "translation_history",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("project_id", String(64), nullable=True),
    Column("key_id", String(64), nullable=False, index=True),
    Column("translation_id", Integer, nullable=True),
    Column("action", Text, nullable=False),
    Column("field", Text, nullable=False),
    Column("old_value", Text),
    Column("new_value", Text),
    Column("actor", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
api_keys_table = Table(
    "api_keys",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("key", String(128), nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("project_id", String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("last_used_at", DateTime(timezone=True), nullable=True),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
)
