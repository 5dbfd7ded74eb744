"""Project context records and the on-disk document codec.

A cache document is Markdown with YAML front matter. The front matter holds
every ProjectContext field in a fixed order; the body is only a title and is
ignored on read. Two front-matter shapes exist:

    2.0     session_history: [{datetime, task, summary}, ...]
    legacy  task: ..., summary: ...   (one embedded pair, no history)

Legacy documents are migrated to 2.0 as soon as they are decoded. A document
tagged `cache_schema_version: legacy` is legacy even without a task/summary
pair; missing keys read as empty.

Text fields are read back as written when quoted, which encode_document always
does. Hand-edited unquoted numbers go through YAML first, so `version: 1.10`
reads as "1.1"; quote such values.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any

import frontmatter
import yaml

from ctxcache.errors import SchemaError

SCHEMA_VERSION = "2.0"
LEGACY_SCHEMA_VERSION = "legacy"
MAX_SESSION_HISTORY = 10
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass
class SessionEntry:
    """One recorded unit of work."""

    datetime: str
    task: str = ""
    summary: str = ""


@dataclass
class ProjectMetadata:
    """Project facts computed outside the cache and stored verbatim."""

    name: str = ""
    version: str = ""
    repository: str = ""
    license: str = ""
    build_system: str = ""
    language: str = ""
    edition: str = ""
    modules: list[str] = field(default_factory=list)
    critical_files: list[str] = field(default_factory=list)
    api_spec_files: list[str] = field(default_factory=list)
    implementation_plan_files: list[str] = field(default_factory=list)
    build_status: str = ""

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ProjectMetadata:
        """Build metadata from a config table or a loaded context, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key in _LIST_FIELDS:
                kwargs[key] = _as_str_list(key, value)
            else:
                kwargs[key] = _as_str(key, value)
        return cls(**kwargs)


@dataclass
class ProjectContext:
    """Everything remembered about one project, the unit of persistence."""

    name: str = ""
    version: str = ""
    repository: str = ""
    license: str = ""
    build_system: str = ""
    language: str = ""
    edition: str = ""
    modules: list[str] = field(default_factory=list)
    module_count: int = 0
    critical_files: list[str] = field(default_factory=list)
    api_spec_files: list[str] = field(default_factory=list)
    implementation_plan_files: list[str] = field(default_factory=list)
    session_count: int = 0
    total_sessions: int = 0
    created_at: str = ""
    last_session: str = ""
    project_path: str = ""
    build_status: str = ""
    cache_schema_version: str = SCHEMA_VERSION
    project_hash: str = ""
    session_history: list[SessionEntry] = field(default_factory=list)

    def metadata(self) -> ProjectMetadata:
        """The collaborator-supplied part of this context."""
        return ProjectMetadata(
            name=self.name,
            version=self.version,
            repository=self.repository,
            license=self.license,
            build_system=self.build_system,
            language=self.language,
            edition=self.edition,
            modules=list(self.modules),
            critical_files=list(self.critical_files),
            api_spec_files=list(self.api_spec_files),
            implementation_plan_files=list(self.implementation_plan_files),
            build_status=self.build_status,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_STR_FIELDS = (
    "name",
    "version",
    "repository",
    "license",
    "build_system",
    "language",
    "edition",
    "created_at",
    "last_session",
    "project_path",
    "build_status",
    "project_hash",
)
_LIST_FIELDS = ("modules", "critical_files", "api_spec_files", "implementation_plan_files")
_INT_FIELDS = ("module_count", "session_count", "total_sessions")


# ── Field coercion ───────────────────────────────────────────


def _as_str(key: str, value: Any) -> str:
    # YAML turns unquoted timestamps and versions into datetimes and numbers
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bool, int, float)):
        return str(value)
    raise SchemaError(f"field '{key}' must be text, got {type(value).__name__}")


def _as_int(key: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise SchemaError(f"field '{key}' must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise SchemaError(f"field '{key}' must be an integer, got {value!r}")


def _as_str_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaError(f"field '{key}' must be a list, got {type(value).__name__}")
    return [_as_str(key, item) for item in value]


def _common_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Scalar and list fields shared by both schema shapes, copied verbatim."""
    values: dict[str, Any] = {}
    for key in _STR_FIELDS:
        values[key] = _as_str(key, data.get(key))
    for key in _LIST_FIELDS:
        values[key] = _as_str_list(key, data.get(key))
    for key in _INT_FIELDS:
        values[key] = _as_int(key, data.get(key))
    return values


# ── Schema variants ──────────────────────────────────────────


def decode_current(data: dict[str, Any]) -> ProjectContext:
    """Decode a 2.0 document. Raises SchemaError if the shape does not match."""
    version = data.get("cache_schema_version", SCHEMA_VERSION)
    if _as_str("cache_schema_version", version) != SCHEMA_VERSION:
        raise SchemaError(f"unsupported cache_schema_version {version!r}")
    if "session_history" not in data:
        raise SchemaError("missing field 'session_history'")
    raw_history = data["session_history"]
    if raw_history is None:
        raw_history = []
    if not isinstance(raw_history, list):
        raise SchemaError("field 'session_history' must be a list")

    history: list[SessionEntry] = []
    for index, item in enumerate(raw_history):
        if not isinstance(item, dict):
            raise SchemaError(f"session_history[{index}] must be a mapping")
        if "datetime" not in item:
            raise SchemaError(f"session_history[{index}] missing field 'datetime'")
        history.append(
            SessionEntry(
                datetime=_as_str("datetime", item["datetime"]),
                task=_as_str("task", item.get("task")),
                summary=_as_str("summary", item.get("summary")),
            )
        )

    return ProjectContext(
        **_common_fields(data),
        cache_schema_version=SCHEMA_VERSION,
        session_history=history,
    )


def decode_legacy(data: dict[str, Any]) -> ProjectContext:
    """Decode a legacy document and migrate it to the 2.0 shape."""
    if "session_history" in data:
        raise SchemaError("legacy documents do not carry 'session_history'")
    tagged = data.get("cache_schema_version") == LEGACY_SCHEMA_VERSION
    if not tagged and "task" not in data and "summary" not in data:
        raise SchemaError("missing fields 'task' and 'summary'")

    values = _common_fields(data)
    task = _as_str("task", data.get("task"))
    summary = _as_str("summary", data.get("summary"))

    history: list[SessionEntry] = []
    if task or summary:
        history.append(SessionEntry(datetime=values["last_session"], task=task, summary=summary))

    return ProjectContext(**values, cache_schema_version=SCHEMA_VERSION, session_history=history)


# ── Document text ────────────────────────────────────────────


def parse_front_matter(text: str) -> dict[str, Any]:
    """Extract the front-matter mapping. Raises SchemaError on malformed YAML."""
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise SchemaError(f"malformed front matter: {e}") from e
    if not post.metadata:
        raise SchemaError("no front matter found")
    return dict(post.metadata)


def decode_document(text: str) -> tuple[ProjectContext, bool]:
    """Decode document text under the 2.0 schema, falling back to legacy.

    Returns (context, migrated). Raises SchemaError carrying both variant
    errors when neither schema matches.
    """
    data = parse_front_matter(text)
    try:
        return decode_current(data), False
    except SchemaError as current_error:
        try:
            return decode_legacy(data), True
        except SchemaError as legacy_error:
            raise SchemaError(
                f"not a 2.0 document ({current_error}); "
                f"not a legacy document ({legacy_error})"
            ) from legacy_error


def encode_document(context: ProjectContext) -> str:
    """Render a context as a 2.0 document with a fixed field order."""
    post = frontmatter.Post(f"# {context.name or 'project'}\n")
    post.metadata.update(context.to_dict())
    return frontmatter.dumps(post, sort_keys=False) + "\n"
