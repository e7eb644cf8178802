"""Data Transfer Objects - API contracts."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from assetstudio.models.domain import (
    AssetType,
    AssetStatus,
    JobStatus,
    ComponentType,
    SuggestionType,
    AICredentials,
    StyleOverride,
)


class ArtStyleDTO(BaseModel):
    """Project art style."""
    description: str = ""
    reference_images: List[str] = Field(default_factory=list)
    style_keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProjectDTO(BaseModel):
    """Project data for API responses."""
    id: str
    name: str
    description: str = ""
    context: str = ""
    art_style: ArtStyleDTO
    created_at: str
    updated_at: str

    model_config = ConfigDict(from_attributes=True)


class ProjectCreateRequest(BaseModel):
    """Request to create a new project.

    Lengths are checked by the repository so that every violation is
    reported together.
    """
    name: str
    description: str = ""
    context: str = ""
    art_style: Optional[ArtStyleDTO] = None


class ProjectUpdateRequest(BaseModel):
    """Partial project update; omitted fields are left unchanged."""
    name: Optional[str] = None
    description: Optional[str] = None
    context: Optional[str] = None
    art_style: Optional[ArtStyleDTO] = None


class ProjectListResponse(BaseModel):
    """Response with list of projects."""
    projects: List[ProjectDTO]
    total: int


class AssetDTO(BaseModel):
    """Asset data for API responses."""
    id: str
    project_id: str
    type: AssetType
    name: str
    description: Optional[str] = None
    file_path: Optional[str] = None
    generation_prompt: str = ""
    generation_parameters: Dict[str, Any] = Field(default_factory=dict)
    status: AssetStatus
    created_at: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class AssetUpdateRequest(BaseModel):
    """Partial asset update. id, project_id and created_at cannot be changed."""
    name: Optional[str] = None
    description: Optional[str] = None
    generation_prompt: Optional[str] = None
    generation_parameters: Optional[Dict[str, Any]] = None
    status: Optional[AssetStatus] = None
    metadata: Optional[Dict[str, Any]] = None


class AssetListResponse(BaseModel):
    """One page of a project's assets."""
    assets: List[AssetDTO]
    total: int
    page: int
    limit: int
    total_pages: int


class JobDTO(BaseModel):
    """Generation job data for API responses."""
    id: str
    asset_id: str
    status: JobStatus
    progress: int = Field(ge=0, le=100)
    error_message: Optional[str] = None
    created_at: str
    completed_at: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AICredentialsDTO(BaseModel):
    """Caller-supplied AI provider, model and key."""
    provider: str
    model: str
    api_key: str = Field(..., min_length=1)

    def to_domain(self) -> AICredentials:
        return AICredentials(provider=self.provider, model=self.model, api_key=self.api_key)


class StyleOverrideDTO(BaseModel):
    """Per-request replacement for the project's art style."""
    description: Optional[str] = None
    keywords: Optional[List[str]] = None

    def to_domain(self) -> StyleOverride:
        return StyleOverride(description=self.description, keywords=self.keywords)


class GenerateRequest(BaseModel):
    """Request to generate an asset of the type named in the URL."""
    project_id: str
    name: str
    description: Optional[str] = None
    generation_prompt: str = Field(..., min_length=1)
    generation_parameters: Dict[str, Any] = Field(default_factory=dict)
    style_override: Optional[StyleOverrideDTO] = None
    ai_credentials: Optional[AICredentialsDTO] = None


class GenerateResponse(BaseModel):
    """Response after starting a generation."""
    asset: AssetDTO
    job: JobDTO
    message: str


class CancelResponse(BaseModel):
    """Response after a cancel request."""
    cancelled: bool
    message: str


class ActiveJobsResponse(BaseModel):
    """Queued and processing jobs."""
    jobs: List[JobDTO]
    total: int


class PromptRequest(BaseModel):
    """Request for breakdown, suggestions or scoring of one prompt."""
    prompt: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    asset_type: Optional[AssetType] = None
    ai_credentials: Optional[AICredentialsDTO] = None
    count: int = Field(3, ge=1, le=10)


class PromptComponentDTO(BaseModel):
    id: str
    type: ComponentType
    label: str
    value: str
    description: Optional[str] = None
    weight: int = Field(5, ge=1, le=10)

    model_config = ConfigDict(from_attributes=True)


class PromptBreakdownDTO(BaseModel):
    """A prompt decomposed into weighted components."""
    id: str
    original_prompt: str
    components: List[PromptComponentDTO]
    reconstructed_prompt: str
    created_at: str
    project_id: Optional[str] = None
    asset_type: Optional[AssetType] = None

    model_config = ConfigDict(from_attributes=True)


class PromptSuggestionDTO(BaseModel):
    id: str
    type: SuggestionType
    title: str
    description: str
    suggested_change: str
    confidence: float = Field(ge=0.0, le=1.0)
    category: str
    reasoning: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PromptSuggestionsResponse(BaseModel):
    suggestions: List[PromptSuggestionDTO]


class PromptScoreDTO(BaseModel):
    """Prompt quality score with feedback."""
    score: int = Field(ge=0, le=100)
    feedback: str
    suggestions: List[str]

    model_config = ConfigDict(from_attributes=True)


class PromptTemplateDTO(BaseModel):
    id: str
    name: str
    description: str
    asset_type: AssetType
    category: str
    components: List[Dict[str, Any]]
    example_prompt: str
    tags: List[str]
    created_at: str
    updated_at: str

    model_config = ConfigDict(from_attributes=True)


class PromptTemplateCreateRequest(BaseModel):
    """Request to add a prompt template."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    asset_type: AssetType
    category: str = ""
    components: List[Dict[str, Any]] = Field(default_factory=list)
    example_prompt: str = ""
    tags: List[str] = Field(default_factory=list)


class PromptHistoryDTO(BaseModel):
    id: str
    project_id: str
    asset_id: Optional[str] = None
    original_prompt: str
    enhanced_prompt: Optional[str] = None
    version: int
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str

    model_config = ConfigDict(from_attributes=True)


class PromptHistoryCreateRequest(BaseModel):
    """Request to record a prompt in the history."""
    project_id: str
    asset_id: Optional[str] = None
    original_prompt: str = Field(..., min_length=1)
    enhanced_prompt: Optional[str] = None
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FieldErrorDTO(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    errors: Optional[List[FieldErrorDTO]] = None


class HealthResponse(BaseModel):
    """Liveness and storage location."""
    status: str
    timestamp: str
    data_dir: str
