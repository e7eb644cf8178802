"""Project repository - JSON document store implementation."""

import logging
from typing import Optional, List, Dict, Any

from assetstudio.models.domain import Project, ArtStyle
from assetstudio.models.validation import validate_project
from assetstudio.repositories.base import Repository, is_safe_id
from assetstudio.repositories.document_store import PROJECTS_INDEX

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("name", "description", "context", "art_style")


def _art_style_dict(value: Any) -> Any:
    if isinstance(value, ArtStyle):
        return value.to_dict()
    if value is None:
        return ArtStyle().to_dict()
    if isinstance(value, dict):
        merged = ArtStyle().to_dict()
        merged.update(value)
        return merged
    return value


def _merge_art_style(current: ArtStyle, value: Any) -> Any:
    """Partial art style dicts update the current style; an ArtStyle replaces it."""
    if isinstance(value, dict):
        merged = current.to_dict()
        merged.update(value)
        return merged
    if value is None:
        return current.to_dict()
    return _art_style_dict(value)


class ProjectRepository(Repository[Project]):
    """
    Repository for project data access.

    Storage:
    - projects/projects.json: index used for listing
    - projects/<id>/project.json: the project itself
    - projects/<id>/assets.json: the project's asset index (owned by AssetRepository)

    Deleting a project removes its whole directory, assets included.
    """

    index_path = PROJECTS_INDEX

    def _project_path(self, project_id: str):
        return self.store.project_dir(project_id) / "project.json"

    def get(self, id: str) -> Optional[Project]:
        """Get project by ID."""
        if not is_safe_id(id):
            return None

        path = self._project_path(id)
        if not self.store.file_exists(path):
            return None

        return Project.from_dict(self.store.read_json(path))

    def exists(self, id: str) -> bool:
        return is_safe_id(id) and self.store.file_exists(self._project_path(id))

    def list(self) -> List[Project]:
        """List all projects in index order."""
        return [Project.from_dict(entry) for entry in self._read_index(self.index_path)]

    def create(self, data: Dict[str, Any]) -> Project:
        """Create a project with its directory structure and empty asset index."""
        now = self.store.get_current_timestamp()
        document = {
            "id": self.store.generate_id(),
            "name": data.get("name"),
            "description": data.get("description", ""),
            "context": data.get("context", ""),
            "art_style": _art_style_dict(data.get("art_style")),
            "created_at": now,
            "updated_at": now,
        }
        validate_project(document)

        project_id = document["id"]
        self.store.ensure_directory(self.store.asset_files_dir(project_id))
        self.store.write_json(self._project_path(project_id), document)
        self.store.write_json(self.store.project_dir(project_id) / "assets.json", [])
        self._upsert_index(self.index_path, document)

        logger.info("Created project %s (%s)", project_id, document["name"])
        return Project.from_dict(document)

    def update(self, id: str, changes: Dict[str, Any]) -> Optional[Project]:
        """Update a project. id and created_at never change; updated_at always does."""
        existing = self.get(id)
        if not existing:
            return None

        document = existing.to_dict()
        for key in PROJECT_FIELDS:
            if key in changes:
                document[key] = changes[key]
        if "art_style" in changes:
            document["art_style"] = _merge_art_style(existing.art_style, changes["art_style"])

        document["id"] = existing.id
        document["created_at"] = existing.created_at
        document["updated_at"] = self.store.get_current_timestamp()
        validate_project(document)

        self.store.write_json(self._project_path(id), document)
        self._upsert_index(self.index_path, document)

        return Project.from_dict(document)

    def delete(self, id: str) -> bool:
        """Delete the project directory (assets included) and its index entry."""
        if not self.get(id):
            return False

        self.store.delete_directory(self.store.project_dir(id), recursive=True)
        self._remove_from_index(self.index_path, id)

        logger.info("Deleted project %s", id)
        return True

    def add_style_images(self, id: str, image_paths: List[str]) -> Optional[Project]:
        """Append reference images to the project's art style."""
        existing = self.get(id)
        if not existing:
            return None

        art_style = existing.art_style.to_dict()
        art_style["reference_images"] = art_style["reference_images"] + list(image_paths)
        return self.update(id, {"art_style": art_style})
