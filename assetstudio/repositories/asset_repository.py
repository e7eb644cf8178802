"""Asset repository - JSON document store implementation."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePath
from typing import Optional, List, Dict, Any

from assetstudio.errors import NotFoundError
from assetstudio.models.domain import Asset, AssetStatus
from assetstudio.models.validation import validate_asset
from assetstudio.repositories.base import Repository, is_safe_id
from assetstudio.repositories.document_store import DocumentStore

logger = logging.getLogger(__name__)

ASSET_FIELDS = (
    "type",
    "name",
    "description",
    "file_path",
    "generation_prompt",
    "generation_parameters",
    "status",
    "metadata",
)


class AssetLocator(ABC):
    """Finds which project owns an asset id."""

    @abstractmethod
    def find_project_id(self, asset_id: str) -> Optional[str]:
        pass


class ScanningAssetLocator(AssetLocator):
    """
    Scans every project directory for assets/<id>.json.

    Linear in the number of projects. A secondary index (asset id -> project
    id) can replace this without changing AssetRepository callers.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def find_project_id(self, asset_id: str) -> Optional[str]:
        for project_id in self.store.list_files("projects"):
            project_dir = self.store.project_dir(project_id)
            if not self.store.resolve(project_dir).is_dir():
                continue
            if self.store.file_exists(project_dir / "assets" / f"{asset_id}.json"):
                return project_id
        return None


class AssetRepository(Repository[Asset]):
    """
    Repository for asset data access.

    Storage (per owning project):
    - projects/<pid>/assets.json: index used for listing a project's assets
    - projects/<pid>/assets/<id>.json: the asset itself
    - projects/<pid>/assets/files/<name>: generated payload, if any
    """

    def __init__(self, store: DocumentStore, locator: Optional[AssetLocator] = None):
        super().__init__(store)
        self.locator = locator or ScanningAssetLocator(store)

    def _index_path(self, project_id: str) -> Path:
        return self.store.project_dir(project_id) / "assets.json"

    def _asset_path(self, project_id: str, asset_id: str) -> Path:
        return self.store.asset_dir(project_id) / f"{asset_id}.json"

    def get(self, id: str) -> Optional[Asset]:
        """Get asset by ID, searching every project."""
        if not is_safe_id(id):
            return None

        project_id = self.locator.find_project_id(id)
        if project_id is None:
            return None

        return Asset.from_dict(self.store.read_json(self._asset_path(project_id, id)))

    def list_by_project(self, project_id: str) -> List[Asset]:
        """List a project's assets in index order."""
        if not is_safe_id(project_id):
            return []
        return [Asset.from_dict(entry) for entry in self._read_index(self._index_path(project_id))]

    def create(self, data: Dict[str, Any]) -> Asset:
        """Create an asset under an existing project."""
        document = {
            "id": self.store.generate_id(),
            "project_id": data.get("project_id"),
            "type": data.get("type"),
            "name": data.get("name"),
            "description": data.get("description"),
            "file_path": data.get("file_path"),
            "generation_prompt": data.get("generation_prompt", ""),
            "generation_parameters": data.get("generation_parameters") or {},
            "status": data.get("status", AssetStatus.PENDING),
            "created_at": self.store.get_current_timestamp(),
            "metadata": data.get("metadata") or {},
        }
        document = _normalise(document)
        validate_asset(document)

        project_id = document["project_id"]
        if not is_safe_id(project_id) or not self.store.file_exists(
            self.store.project_dir(project_id) / "project.json"
        ):
            raise NotFoundError(f"Project {project_id} not found")

        self.store.write_json(self._asset_path(project_id, document["id"]), document)
        self._upsert_index(self._index_path(project_id), document)

        return Asset.from_dict(document)

    def update(self, id: str, changes: Dict[str, Any]) -> Optional[Asset]:
        """Update an asset. id, project_id and created_at never change."""
        located = self.get(id)
        if not located:
            return None

        asset_path = self._asset_path(located.project_id, id)
        with self.store.lock(asset_path):
            existing = self.get(id)
            if not existing:
                return None

            document = existing.to_dict()
            for key in ASSET_FIELDS:
                if key in changes:
                    document[key] = changes[key]

            document["id"] = existing.id
            document["project_id"] = existing.project_id
            document["created_at"] = existing.created_at
            document = _normalise(document)
            validate_asset(document)

            self.store.write_json(asset_path, document)
            self._upsert_index(self._index_path(existing.project_id), document)

        return Asset.from_dict(document)

    def delete(self, id: str) -> bool:
        """Delete the asset's payload file, its document and its index entry."""
        existing = self.get(id)
        if not existing:
            return False

        if existing.file_path:
            payload = self.get_file_path(existing.project_id, PurePath(existing.file_path).name)
            self.store.delete_file(payload)

        self.store.delete_file(self._asset_path(existing.project_id, id))
        self._remove_from_index(self._index_path(existing.project_id), id)

        logger.info("Deleted asset %s from project %s", id, existing.project_id)
        return True

    def get_file_path(self, project_id: str, file_name: str) -> Path:
        """Store path of an asset payload file."""
        return self.store.asset_files_dir(project_id) / file_name


def _normalise(document: Dict[str, Any]) -> Dict[str, Any]:
    """Store enum members as their plain values."""
    for key in ("type", "status"):
        value = document.get(key)
        if hasattr(value, "value"):
            document[key] = value.value
    return document
