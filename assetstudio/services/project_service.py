"""Project service - business logic for project and asset management."""

import math
from pathlib import Path, PurePath
from typing import Optional, List, Tuple

from assetstudio.errors import FieldError, NotFoundError, ValidationError
from assetstudio.models.domain import Asset, Project
from assetstudio.models.dto import (
    AssetDTO,
    AssetListResponse,
    AssetUpdateRequest,
    ProjectCreateRequest,
    ProjectDTO,
    ProjectListResponse,
    ProjectUpdateRequest,
)
from assetstudio.repositories.asset_repository import AssetRepository
from assetstudio.repositories.project_repository import ProjectRepository
from assetstudio.services.config_service import get_config_service


class ProjectService:
    """
    Service for project and asset management business logic.

    Responsibilities:
    - Orchestrate project and asset CRUD
    - Paginate a project's assets
    - Store uploaded style reference images
    - Convert between domain entities and DTOs

    Does NOT:
    - Handle HTTP requests (that's API layer)
    - Access files directly (that's repository layer)
    """

    def __init__(self, project_repo: ProjectRepository, asset_repo: AssetRepository):
        self.project_repo = project_repo
        self.asset_repo = asset_repo
        self.config_service = get_config_service()

    def list_projects(self) -> ProjectListResponse:
        """List all projects."""
        projects = self.project_repo.list()

        return ProjectListResponse(
            projects=[self._to_dto(p) for p in projects],
            total=len(projects),
        )

    def get_project(self, project_id: str) -> Optional[ProjectDTO]:
        """Get project by ID."""
        project = self.project_repo.get(project_id)

        if not project:
            return None

        return self._to_dto(project)

    def create_project(self, request: ProjectCreateRequest) -> ProjectDTO:
        """Create a new project. Raises ValidationError listing every bad field."""
        project = self.project_repo.create(request.model_dump())
        return self._to_dto(project)

    def update_project(self, project_id: str, request: ProjectUpdateRequest) -> Optional[ProjectDTO]:
        """Update the fields present in the request."""
        project = self.project_repo.update(project_id, request.model_dump(exclude_unset=True))

        if not project:
            return None

        return self._to_dto(project)

    def delete_project(self, project_id: str) -> bool:
        """Delete a project and all of its assets."""
        return self.project_repo.delete(project_id)

    def save_style_images(
        self,
        project_id: str,
        files: List[Tuple[str, bytes]],
    ) -> ProjectDTO:
        """
        Store style reference images and append them to the project's art style.

        Business rules:
        - Project must exist
        - Every file must have an accepted image extension
        """
        if not self.project_repo.exists(project_id):
            raise NotFoundError(f"Project {project_id} not found")

        allowed = [ext.lower() for ext in self.config_service.get_style_image_formats()]
        errors = [
            FieldError(f"files[{i}]", f"Unsupported image format: {name}")
            for i, (name, _) in enumerate(files)
            if PurePath(name).suffix.lower() not in allowed
        ]
        if not files:
            errors.append(FieldError("files", "At least one image is required"))
        if errors:
            raise ValidationError("style images", errors)

        store = self.project_repo.store
        stored = []
        for name, content in files:
            relative = store.style_dir(project_id) / f"{store.generate_id()}{PurePath(name).suffix.lower()}"
            store.write_file(relative, content)
            stored.append(relative.as_posix())

        project = self.project_repo.add_style_images(project_id, stored)
        return self._to_dto(project)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def list_assets(self, project_id: str, page: int = 1, limit: int = 20) -> AssetListResponse:
        """One page of a project's assets; pagination is applied in memory."""
        if not self.project_repo.exists(project_id):
            raise NotFoundError(f"Project {project_id} not found")

        assets = self.asset_repo.list_by_project(project_id)
        start = (page - 1) * limit

        return AssetListResponse(
            assets=[self._asset_to_dto(a) for a in assets[start:start + limit]],
            total=len(assets),
            page=page,
            limit=limit,
            total_pages=math.ceil(len(assets) / limit) if assets else 0,
        )

    def get_asset(self, asset_id: str) -> Optional[AssetDTO]:
        asset = self.asset_repo.get(asset_id)
        return self._asset_to_dto(asset) if asset else None

    def update_asset(self, asset_id: str, request: AssetUpdateRequest) -> Optional[AssetDTO]:
        asset = self.asset_repo.update(asset_id, request.model_dump(exclude_unset=True))
        return self._asset_to_dto(asset) if asset else None

    def delete_asset(self, asset_id: str) -> bool:
        return self.asset_repo.delete(asset_id)

    def get_asset_download(self, asset_id: str) -> Tuple[Path, str]:
        """Absolute path and download name of an asset's payload file."""
        asset = self.asset_repo.get(asset_id)
        if not asset:
            raise NotFoundError(f"Asset {asset_id} not found")
        if not asset.file_path:
            raise NotFoundError(f"Asset {asset_id} has no file")

        file_name = PurePath(asset.file_path).name
        relative = self.asset_repo.get_file_path(asset.project_id, file_name)
        if not self.asset_repo.store.file_exists(relative):
            raise NotFoundError(f"File for asset {asset_id} not found")

        return self.asset_repo.store.resolve(relative), file_name

    @staticmethod
    def _to_dto(project: Project) -> ProjectDTO:
        """Convert domain entity to DTO."""
        return ProjectDTO.model_validate(project)

    @staticmethod
    def _asset_to_dto(asset: Asset) -> AssetDTO:
        return AssetDTO.model_validate(asset)
