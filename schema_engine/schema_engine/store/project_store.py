"""JSON-file persistence for projects, schema snapshots and local overrides.

Each project lives in its own directory::

    <project_dir>/
        schemagit.json          committed project metadata (incl. environments)
        schemagit.local.json    machine-local override, git-ignored
        schema/schema.json      the versioned schema snapshot

Projects created through :meth:`ProjectStore.create_project` live under
``<projects_root>/<project_id>``.  Imported projects stay in the directory
they were checked out to; the store remembers that location in the index
file ``<projects_root>/projects.json``.

Reads treat a missing *or malformed* file as absent so that a corrupted file
degrades the caller's result instead of failing it.  Writes go to a temporary
file first and are renamed into place.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import BaseModel, Field, ValidationError

from schema_engine.errors import MetadataWriteError, ProjectNotFoundError, SnapshotWriteError
from schema_engine.models.project import LocalOverride, ProjectMetadata, ProjectSummary
from schema_engine.models.snapshot import SchemaSnapshot, SnapshotFile

logger = logging.getLogger(__name__)

METADATA_FILE = "schemagit.json"
LOCAL_OVERRIDE_FILE = "schemagit.local.json"
SNAPSHOT_FILE = Path("schema") / "schema.json"
INDEX_FILE = "projects.json"

_M = TypeVar("_M", bound=BaseModel)


class SnapshotStore(Protocol):
    """Persistence operations consumed by the engine services."""

    def project_dir(self, project_id: str) -> Path: ...

    def snapshot_path(self, project_id: str) -> Path: ...

    async def get_snapshot_file(self, project_id: str) -> SnapshotFile | None: ...

    async def get_project_metadata(self, project_id: str) -> ProjectMetadata | None: ...

    async def save_project_metadata(self, metadata: ProjectMetadata) -> ProjectMetadata: ...

    async def get_local_override(self, project_id: str) -> LocalOverride | None: ...


class ProjectIndex(BaseModel):
    """Contents of the ``projects.json`` index."""

    version: int = 1
    projects: list[ProjectSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def _read_model(path: Path, model: type[_M]) -> _M | None:
    """Parse *path* into *model*; None when missing or malformed."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None

    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed %s (%d error(s))", path, exc.error_count())
        return None


def _write_text_atomic(path: Path, text: str) -> None:
    """Write *text* to a sibling temporary file and rename it over *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.{os.getpid()}.{uuid.uuid4().hex}.tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def _dump(model: BaseModel) -> str:
    return model.model_dump_json(indent=2) + "\n"


def schemas_equal(left: list[SchemaSnapshot], right: list[SchemaSnapshot]) -> bool:
    """Return True when two schema lists serialise to identical JSON."""
    left_json = json.dumps([s.model_dump(mode="json") for s in left], sort_keys=True)
    right_json = json.dumps([s.model_dump(mode="json") for s in right], sort_keys=True)
    return left_json == right_json


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ProjectStore:
    """File-backed :class:`SnapshotStore`.

    Parameters
    ----------
    projects_root:
        Directory holding the project index and every non-imported project.
    """

    def __init__(self, projects_root: Path | str) -> None:
        self._root = Path(projects_root)
        self._index_path = self._root / INDEX_FILE
        self._source_paths: dict[str, Path] | None = None

    @property
    def projects_root(self) -> Path:
        return self._root

    # -- paths ---------------------------------------------------------------

    def _load_index(self) -> ProjectIndex:
        return _read_model(self._index_path, ProjectIndex) or ProjectIndex()

    def _save_index(self, index: ProjectIndex) -> None:
        try:
            _write_text_atomic(self._index_path, _dump(index))
        except OSError as exc:
            raise MetadataWriteError(f"Could not write project index {self._index_path}: {exc}") from exc
        self._source_paths = {p.id: Path(p.source_path) for p in index.projects if p.source_path}

    def project_dir(self, project_id: str) -> Path:
        """Working directory of *project_id* (source path for imported projects)."""
        if self._source_paths is None:
            index = self._load_index()
            self._source_paths = {p.id: Path(p.source_path) for p in index.projects if p.source_path}
        return self._source_paths.get(project_id, self._root / project_id)

    def snapshot_path(self, project_id: str) -> Path:
        return self.project_dir(project_id) / SNAPSHOT_FILE

    def _metadata_path(self, project_id: str) -> Path:
        return self.project_dir(project_id) / METADATA_FILE

    def _local_override_path(self, project_id: str) -> Path:
        return self.project_dir(project_id) / LOCAL_OVERRIDE_FILE

    # -- projects ------------------------------------------------------------

    async def list_projects(self) -> list[ProjectSummary]:
        index = await asyncio.to_thread(self._load_index)
        return index.projects

    async def create_project(
        self,
        *,
        database_id: str,
        name: str,
        description: str | None = None,
        default_schema: str | None = None,
        engine: str | None = None,
    ) -> ProjectMetadata:
        """Create the project directory, its empty snapshot and its metadata."""
        project_id = str(uuid.uuid4())
        metadata = ProjectMetadata(
            id=project_id,
            database_id=database_id,
            name=name,
            description=description,
            default_schema=default_schema,
            engine=engine,
        )
        snapshot = SnapshotFile(project_id=project_id, database_id=database_id, cached_at=metadata.created_at)

        def _create() -> None:
            project_dir = self._root / project_id
            try:
                _write_text_atomic(project_dir / METADATA_FILE, _dump(metadata))
                _write_text_atomic(project_dir / SNAPSHOT_FILE, _dump(snapshot))
                _write_text_atomic(project_dir / LOCAL_OVERRIDE_FILE, _dump(LocalOverride()))
            except OSError as exc:
                raise MetadataWriteError(f"Could not create project {project_id}: {exc}") from exc
            self._ensure_gitignore(project_dir)

            index = self._load_index()
            index.projects.append(
                ProjectSummary(
                    id=project_id,
                    name=name,
                    database_id=database_id,
                    description=description,
                    engine=engine,
                    created_at=metadata.created_at,
                    updated_at=metadata.updated_at,
                )
            )
            self._save_index(index)

        await asyncio.to_thread(_create)
        logger.info("Created project %s (%s)", project_id, name)
        return metadata

    async def register_project(self, project_dir: Path | str) -> ProjectMetadata:
        """Index an existing checked-out project directory in place.

        Raises
        ------
        ProjectNotFoundError
            If *project_dir* has no readable project metadata file.
        """
        source = Path(project_dir).resolve()
        metadata = await asyncio.to_thread(_read_model, source / METADATA_FILE, ProjectMetadata)
        if metadata is None:
            raise ProjectNotFoundError(f"No {METADATA_FILE} found in {source}")

        def _register() -> None:
            index = self._load_index()
            index.projects = [p for p in index.projects if p.id != metadata.id]
            index.projects.append(
                ProjectSummary(
                    id=metadata.id,
                    name=metadata.name,
                    database_id=metadata.database_id,
                    description=metadata.description,
                    engine=metadata.engine,
                    source_path=str(source),
                    created_at=metadata.created_at,
                    updated_at=metadata.updated_at,
                )
            )
            self._save_index(index)
            self._ensure_gitignore(source)

        await asyncio.to_thread(_register)
        logger.info("Registered project %s from %s", metadata.id, source)
        return metadata

    def _ensure_gitignore(self, project_dir: Path) -> bool:
        """Make sure the local override file is git-ignored.

        Returns True when ``.gitignore`` was modified.
        """
        gitignore = project_dir / ".gitignore"
        try:
            existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", gitignore, exc)
            return False

        if LOCAL_OVERRIDE_FILE in {line.strip() for line in existing.splitlines()}:
            return False

        prefix = "" if not existing or existing.endswith("\n") else "\n"
        try:
            with gitignore.open("a", encoding="utf-8") as fh:
                fh.write(f"{prefix}{LOCAL_OVERRIDE_FILE}\n")
        except OSError as exc:
            raise MetadataWriteError(f"Could not update {gitignore}: {exc}") from exc
        return True

    # -- metadata ------------------------------------------------------------

    async def get_project_metadata(self, project_id: str) -> ProjectMetadata | None:
        return await asyncio.to_thread(_read_model, self._metadata_path(project_id), ProjectMetadata)

    async def save_project_metadata(self, metadata: ProjectMetadata) -> ProjectMetadata:
        """Persist *metadata* to the committed metadata file.

        Raises
        ------
        MetadataWriteError
            If the file cannot be written.
        """
        path = self._metadata_path(metadata.id)
        try:
            await asyncio.to_thread(_write_text_atomic, path, _dump(metadata))
        except OSError as exc:
            raise MetadataWriteError(f"Could not write {path}: {exc}") from exc
        logger.debug("Saved metadata for project %s", metadata.id)
        return metadata

    # -- local override ------------------------------------------------------

    async def get_local_override(self, project_id: str) -> LocalOverride | None:
        return await asyncio.to_thread(_read_model, self._local_override_path(project_id), LocalOverride)

    async def save_local_override(self, project_id: str, override: LocalOverride) -> LocalOverride:
        path = self._local_override_path(project_id)
        try:
            await asyncio.to_thread(_write_text_atomic, path, _dump(override))
        except OSError as exc:
            raise MetadataWriteError(f"Could not write {path}: {exc}") from exc
        return override

    # -- snapshot ------------------------------------------------------------

    async def get_snapshot_file(self, project_id: str) -> SnapshotFile | None:
        return await asyncio.to_thread(_read_model, self.snapshot_path(project_id), SnapshotFile)

    async def save_snapshot(
        self,
        project_id: str,
        schemas: list[SchemaSnapshot],
        *,
        database_id: str | None = None,
    ) -> tuple[SnapshotFile, bool]:
        """Write a freshly introspected snapshot.

        The write is skipped when *schemas* is identical to the stored
        content, so re-introspecting an unchanged database never creates a
        phantom history entry.

        Returns
        -------
        tuple[SnapshotFile, bool]
            The current snapshot file and whether it was written.

        Raises
        ------
        SnapshotWriteError
            If the file cannot be written.
        """
        existing = await self.get_snapshot_file(project_id)
        if existing is not None and schemas_equal(existing.schemas, schemas):
            logger.debug("Snapshot for project %s unchanged; skipping write", project_id)
            return existing, False

        if database_id is None:
            if existing is not None:
                database_id = existing.database_id
            else:
                metadata = await self.get_project_metadata(project_id)
                database_id = metadata.database_id if metadata is not None else ""

        snapshot = SnapshotFile(project_id=project_id, database_id=database_id, schemas=schemas)
        path = self.snapshot_path(project_id)
        try:
            await asyncio.to_thread(_write_text_atomic, path, _dump(snapshot))
        except OSError as exc:
            raise SnapshotWriteError(f"Could not write {path}: {exc}") from exc
        logger.info(
            "Saved snapshot for project %s (%d tables)",
            project_id,
            snapshot.table_count(),
            extra={"project_id": project_id},
        )
        return snapshot, True
