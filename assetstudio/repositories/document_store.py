"""JSON document store - filesystem implementation.

Keys are paths relative to a root data directory; values are JSON documents
or raw text/binary blobs. Every overwrite and delete may be preceded by a
timestamped backup, and every write goes through a temp file + rename so a
crash never leaves a half-written primary file.

Layout:
    projects/projects.json              index of projects
    projects/<id>/project.json          one project
    projects/<id>/assets.json           index of the project's assets
    projects/<id>/assets/<assetId>.json one asset
    projects/<id>/assets/files/...      asset payloads
    projects/<id>/style/...             style reference images
    jobs/generation-jobs.json           index of generation jobs
    prompts/*.json                      prompt audit trail
    <dir>/.backups/<file>.<ts>.backup   backups, co-located per directory
"""

import json
import logging
import os
import shutil
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from assetstudio import env_config
from assetstudio.errors import CorruptDataError, DocumentNotFoundError

logger = logging.getLogger(__name__)

BACKUP_DIR_NAME = ".backups"
BACKUP_SUFFIX = ".backup"

PROJECTS_INDEX = "projects/projects.json"
JOBS_INDEX = "jobs/generation-jobs.json"

PathLike = Union[str, Path]


def backup_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with ':' and '.' replaced, safe in file names.

    Microsecond precision keeps names unique and lexicographically ordered.
    """
    iso = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return iso.replace(":", "-").replace(".", "-")


class DocumentStore:
    """
    Durable, crash-tolerant storage rooted at a data directory.

    Configuration:
    - data_dir: root of the store
    - enable_backups: snapshot files into .backups/ before overwrite/delete
    - max_backups: number of most-recent backups kept per logical file

    Index read-modify-write sequences are not atomic on their own; callers
    wrap them in lock(path), which serialises them per index within this
    process.
    """

    def __init__(
        self,
        data_dir: Optional[PathLike] = None,
        enable_backups: Optional[bool] = None,
        max_backups: Optional[int] = None,
    ):
        self.data_dir = Path(data_dir) if data_dir is not None else Path(env_config.DATA_DIR)
        self.enable_backups = env_config.ENABLE_BACKUPS if enable_backups is None else enable_backups
        self.max_backups = env_config.MAX_BACKUPS if max_backups is None else max_backups

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def initialize(self):
        """Create the directory layout and empty index files. Idempotent."""
        self.ensure_directory(".")
        self.ensure_directory("projects")
        self.ensure_directory("jobs")

        for index_path in (PROJECTS_INDEX, JOBS_INDEX):
            if not self.file_exists(index_path):
                self.write_json(index_path, [])

        logger.info("Document store initialized at %s", self.data_dir)

    # ------------------------------------------------------------------
    # Identity and time
    # ------------------------------------------------------------------

    @staticmethod
    def generate_id() -> str:
        """Return a new globally unique identifier."""
        return str(uuid.uuid4())

    @staticmethod
    def get_current_timestamp() -> str:
        """Current UTC time as ISO-8601 with millisecond precision."""
        now = datetime.now(timezone.utc)
        return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def resolve(self, path: PathLike) -> Path:
        """Absolute path for a store key. Rejects paths outside the root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.data_dir / candidate

        root = self.data_dir.resolve()
        resolved = candidate.resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Path escapes data directory: {path}")
        return resolved

    @staticmethod
    def project_dir(project_id: str) -> Path:
        return Path("projects") / project_id

    def asset_dir(self, project_id: str) -> Path:
        return self.project_dir(project_id) / "assets"

    def asset_files_dir(self, project_id: str) -> Path:
        return self.asset_dir(project_id) / "files"

    def style_dir(self, project_id: str) -> Path:
        return self.project_dir(project_id) / "style"

    @contextmanager
    def lock(self, path: PathLike) -> Iterator[None]:
        """Serialise read-modify-write sequences on one document."""
        key = str(self.resolve(path))
        with self._locks_guard:
            path_lock = self._locks.setdefault(key, threading.RLock())
        with path_lock:
            yield

    # ------------------------------------------------------------------
    # JSON documents
    # ------------------------------------------------------------------

    def read_json(self, path: PathLike) -> Any:
        """
        Read and parse a JSON document.

        Raises:
            DocumentNotFoundError: file is absent
            CorruptDataError: file is unparsable and no backup recovers it
        """
        absolute = self.resolve(path)
        try:
            raw = absolute.read_bytes()
        except FileNotFoundError:
            raise DocumentNotFoundError(str(path)) from None

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            recovered = self._recover_from_backup(absolute)
            if recovered is None:
                raise CorruptDataError(str(path), str(e)) from e
            return recovered[1]

    def write_json(self, path: PathLike, data: Any):
        """Write a JSON document atomically, backing up the previous version."""
        payload = json.dumps(data, indent=2, ensure_ascii=False)
        self._write(self.resolve(path), payload.encode("utf-8"))

    # ------------------------------------------------------------------
    # Files and directories
    # ------------------------------------------------------------------

    def write_file(self, path: PathLike, content: Union[str, bytes]):
        """Write raw text or bytes with the same backup/atomicity discipline."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._write(self.resolve(path), content)

    def read_bytes(self, path: PathLike) -> bytes:
        absolute = self.resolve(path)
        try:
            return absolute.read_bytes()
        except FileNotFoundError:
            raise DocumentNotFoundError(str(path)) from None

    def file_exists(self, path: PathLike) -> bool:
        return self.resolve(path).exists()

    def delete_file(self, path: PathLike) -> bool:
        """Delete a file. Returns False if it did not exist."""
        absolute = self.resolve(path)
        if not absolute.is_file():
            return False

        if self.enable_backups:
            self._create_backup(absolute)

        try:
            absolute.unlink()
        except FileNotFoundError:
            return False
        return True

    def delete_directory(self, path: PathLike, recursive: bool = True) -> bool:
        """Delete a directory. Returns False if it did not exist."""
        absolute = self.resolve(path)
        if not absolute.is_dir():
            return False

        if self.enable_backups:
            self._create_backup(absolute)

        if recursive:
            shutil.rmtree(absolute)
        else:
            absolute.rmdir()
        return True

    def list_files(self, path: PathLike) -> List[str]:
        """List entry names in a directory, hiding dot-prefixed entries.

        A missing directory is empty, not an error.
        """
        absolute = self.resolve(path)
        try:
            names = os.listdir(absolute)
        except FileNotFoundError:
            return []
        return sorted(name for name in names if not name.startswith("."))

    def ensure_directory(self, path: PathLike) -> Path:
        absolute = self.resolve(path)
        absolute.mkdir(parents=True, exist_ok=True)
        return absolute

    def list_backups(self, path: PathLike) -> List[Path]:
        """Backups of a file or directory, newest first."""
        absolute = self.resolve(path)
        return [p for _, p in self._backups_for(absolute.parent / BACKUP_DIR_NAME, absolute.name)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _write(self, absolute: Path, payload: bytes):
        if self.enable_backups and absolute.is_file():
            self._create_backup(absolute)
        self._atomic_write(absolute, payload)

    @staticmethod
    def _atomic_write(absolute: Path, payload: bytes):
        absolute.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=str(absolute.parent),
            prefix=f".{absolute.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, absolute)
        except BaseException:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise

    def _create_backup(self, absolute: Path):
        """Snapshot a file or directory. Failures are logged, never raised."""
        try:
            backup_dir = absolute.parent / BACKUP_DIR_NAME
            backup_dir.mkdir(parents=True, exist_ok=True)

            moment = datetime.now(timezone.utc)
            backup_path = backup_dir / f"{absolute.name}.{backup_timestamp(moment)}{BACKUP_SUFFIX}"
            newest = self._backups_for(backup_dir, absolute.name)
            while backup_path.exists() or (newest and backup_path.name <= newest[0][1].name):
                moment += timedelta(microseconds=1)
                backup_path = backup_dir / f"{absolute.name}.{backup_timestamp(moment)}{BACKUP_SUFFIX}"

            if absolute.is_dir():
                shutil.copytree(
                    absolute,
                    backup_path,
                    ignore=shutil.ignore_patterns(BACKUP_DIR_NAME),
                )
            else:
                shutil.copy2(absolute, backup_path)
        except Exception as e:
            logger.warning("Failed to create backup for %s: %s", absolute, e)
            return

        self._cleanup_old_backups(backup_dir, absolute.name)

    def _cleanup_old_backups(self, backup_dir: Path, name: str):
        try:
            for _, stale in self._backups_for(backup_dir, name)[self.max_backups:]:
                if stale.is_dir():
                    shutil.rmtree(stale)
                else:
                    stale.unlink()
        except Exception as e:
            logger.warning("Failed to clean up old backups in %s: %s", backup_dir, e)

    @staticmethod
    def _backups_for(backup_dir: Path, name: str) -> List[Tuple[str, Path]]:
        """(timestamp, path) pairs for one logical file, newest first."""
        prefix = f"{name}."
        try:
            entries = os.listdir(backup_dir)
        except FileNotFoundError:
            return []

        backups = []
        for entry in entries:
            if not (entry.startswith(prefix) and entry.endswith(BACKUP_SUFFIX)):
                continue
            stamp = entry[len(prefix):-len(BACKUP_SUFFIX)]
            if not stamp or "." in stamp:
                continue
            backups.append((stamp, backup_dir / entry))

        return sorted(backups, key=lambda item: item[0], reverse=True)

    def _recover_from_backup(self, absolute: Path) -> Optional[Tuple[Path, Any]]:
        """Restore the newest parsable backup over a corrupt primary file."""
        for _, backup in self._backups_for(absolute.parent / BACKUP_DIR_NAME, absolute.name):
            if not backup.is_file():
                continue
            try:
                text = backup.read_text(encoding="utf-8")
                data = json.loads(text)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError):
                continue

            self._atomic_write(absolute, text.encode("utf-8"))
            logger.warning("Recovered corrupt %s from backup %s", absolute, backup.name)
            return backup, data

        return None
