"""Per-root project metadata persisted at ``<root>/.skm/meta.json``."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from skm.errors import ConfigurationError, FilesystemError, SerializationError
from skm.models import AutomationLevel
from skm.utils.io import write_json_atomically

LOGGER = logging.getLogger(__name__)

STATE_DIR_NAME = ".skm"
META_FILE_NAME = "meta.json"
META_STORE_VERSION = "1.0.0"
COMMAND_KEY_PREFIX = "command."
MAX_IMPACT = 255

SETTABLE_KEYS: tuple[str, ...] = ("impact", "approved_by_human", "agent_command", "command.<name>")


class ProjectMeta(BaseModel):
    """Operator-maintained metadata for one project."""

    impact: int | None = Field(default=None, ge=0, le=MAX_IMPACT)
    approved_by_human: bool = False
    custom_commands: dict[str, str] = Field(default_factory=dict)
    agent_command: str | None = None
    automation_level: AutomationLevel | None = None
    auto_approve: list[str] = Field(default_factory=list)


class ProjectMetaStore(BaseModel):
    """All project metadata for one scan root, keyed by project id."""

    version: str = META_STORE_VERSION
    projects: dict[str, ProjectMeta] = Field(default_factory=dict)

    def get_project(self, project_id: str) -> ProjectMeta | None:
        return self.projects.get(project_id)

    def ensure_project(self, project_id: str) -> ProjectMeta:
        """Return the project's metadata, inserting defaults when absent."""

        if project_id not in self.projects:
            self.projects[project_id] = ProjectMeta()
        return self.projects[project_id]

    def set_value(self, project_id: str, key: str, value: str) -> ProjectMeta:
        """Set one metadata field from its command-line string form.

        Recognised keys are ``impact`` (integer 0-255), ``approved_by_human``
        (``true``/``false``), ``agent_command`` and ``command.<name>``.
        """

        if key == "impact":
            parsed_impact = _parse_impact(value)
            meta = self.ensure_project(project_id)
            meta.impact = parsed_impact
        elif key == "approved_by_human":
            parsed_flag = _parse_bool(value, key)
            meta = self.ensure_project(project_id)
            meta.approved_by_human = parsed_flag
        elif key == "agent_command":
            meta = self.ensure_project(project_id)
            meta.agent_command = value
        elif key.startswith(COMMAND_KEY_PREFIX) and len(key) > len(COMMAND_KEY_PREFIX):
            meta = self.ensure_project(project_id)
            meta.custom_commands[key[len(COMMAND_KEY_PREFIX):]] = value
        else:
            raise ConfigurationError(f"Unknown key: {key}")
        return meta


def _parse_impact(value: str) -> int:
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ConfigurationError(f"impact must be an integer, got {value!r}") from exc
    if not 0 <= parsed <= MAX_IMPACT:
        raise ConfigurationError(f"impact must be between 0 and {MAX_IMPACT}, got {parsed}")
    return parsed


def _parse_bool(value: str, key: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ConfigurationError(f"{key} must be 'true' or 'false', got {value!r}")


def meta_store_path(root: Path) -> Path:
    return root / STATE_DIR_NAME / META_FILE_NAME


def load_meta_store(root: Path, logger: logging.Logger | None = None) -> ProjectMetaStore:
    """Load the metadata store for ``root``; a missing file yields an empty store."""

    effective_logger = logger or LOGGER
    path = meta_store_path(root)
    if not path.exists():
        effective_logger.debug("meta.store_missing path=%s", path)
        return ProjectMetaStore()

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    try:
        return ProjectMetaStore.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise SerializationError(f"Malformed metadata store {path}: {exc}") from exc


def save_meta_store(root: Path, store: ProjectMetaStore, logger: logging.Logger | None = None) -> Path:
    """Persist the metadata store wholesale."""

    effective_logger = logger or LOGGER
    path = meta_store_path(root)
    try:
        write_json_atomically(store.model_dump(mode="json"), path)
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    effective_logger.info("meta.store_saved path=%s projects=%s", path, len(store.projects))
    return path
