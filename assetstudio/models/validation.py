"""Schema validation for persisted entities.

Documents are checked against pydantic record models before they are
written. Every violation in a document is reported together in one
ValidationError.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError

from assetstudio.errors import FieldError, ValidationError
from assetstudio.models.domain import AssetType, AssetStatus, JobStatus


NAME_MAX = 100
DESCRIPTION_MAX = 500
CONTEXT_MAX = 1000
ART_STYLE_DESCRIPTION_MAX = 2000


class ArtStyleRecord(BaseModel):
    description: str = Field(..., max_length=ART_STYLE_DESCRIPTION_MAX)
    reference_images: List[str]
    style_keywords: List[str]


class ProjectRecord(BaseModel):
    """Project document as stored in project.json."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=NAME_MAX)
    description: str = Field(..., max_length=DESCRIPTION_MAX)
    context: str = Field(..., max_length=CONTEXT_MAX)
    art_style: ArtStyleRecord
    created_at: datetime
    updated_at: datetime


class AssetRecord(BaseModel):
    """Asset document as stored under a project's assets directory."""
    id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    type: AssetType
    name: str = Field(..., min_length=1, max_length=NAME_MAX)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)
    file_path: Optional[str] = None
    generation_prompt: str
    generation_parameters: Dict[str, Any]
    status: AssetStatus
    created_at: datetime
    metadata: Dict[str, Any]


class JobRecord(BaseModel):
    """Generation job entry in the jobs index."""
    id: str = Field(..., min_length=1)
    asset_id: str = Field(..., min_length=1)
    status: JobStatus
    progress: StrictInt = Field(..., ge=0, le=100)
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


def _field_path(loc) -> str:
    return ".".join(str(part) for part in loc)


def _validate(record: Type[BaseModel], entity: str, data: Dict[str, Any]) -> None:
    try:
        record.model_validate(data)
    except PydanticValidationError as e:
        errors = [FieldError(_field_path(err["loc"]), err["msg"]) for err in e.errors()]
        raise ValidationError(entity, errors) from e


def validate_project(data: Dict[str, Any]) -> None:
    """Validate a project document."""
    _validate(ProjectRecord, "project", data)


def validate_asset(data: Dict[str, Any]) -> None:
    """Validate an asset document."""
    _validate(AssetRecord, "asset", data)


def validate_job(data: Dict[str, Any]) -> None:
    """Validate a generation job document."""
    _validate(JobRecord, "generation job", data)
