"""Domain entities - internal representation (framework-agnostic)."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any


class AssetType(str, Enum):
    """Kind of generated asset."""
    IMAGE = "image"
    VIDEO = "video"
    PROMPT = "prompt"


class AssetStatus(str, Enum):
    """Asset status enumeration."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(str, Enum):
    """Generation job status enumeration."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class EnhancementType(str, Enum):
    """How an enhanced prompt was produced."""
    MANUAL = "manual"
    AI = "ai"
    TEMPLATE = "template"


class ComponentType(str, Enum):
    """Prompt component categories."""
    SUBJECT = "subject"
    STYLE = "style"
    COMPOSITION = "composition"
    LIGHTING = "lighting"
    CAMERA = "camera"
    MOOD = "mood"
    QUALITY = "quality"
    TECHNICAL = "technical"


class SuggestionType(str, Enum):
    """Prompt suggestion categories."""
    IMPROVEMENT = "improvement"
    ALTERNATIVE = "alternative"
    COMPONENT = "component"
    STYLE = "style"


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class ArtStyle:
    """Visual style shared by every asset of a project."""
    description: str = ""
    reference_images: List[str] = field(default_factory=list)
    style_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "reference_images": list(self.reference_images),
            "style_keywords": list(self.style_keywords),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ArtStyle":
        data = data or {}
        return cls(
            description=data.get("description", ""),
            reference_images=list(data.get("reference_images", [])),
            style_keywords=list(data.get("style_keywords", [])),
        )


@dataclass
class Project:
    """Project domain entity."""
    id: str
    name: str
    description: str
    context: str
    art_style: ArtStyle
    created_at: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "context": self.context,
            "art_style": self.art_style.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        art_style = data.get("art_style")
        if not isinstance(art_style, ArtStyle):
            art_style = ArtStyle.from_dict(art_style)
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            context=data.get("context", ""),
            art_style=art_style,
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


@dataclass
class Asset:
    """Asset domain entity. Owned by exactly one project."""
    id: str
    project_id: str
    type: AssetType
    name: str
    generation_prompt: str
    status: AssetStatus
    created_at: str
    description: Optional[str] = None
    file_path: Optional[str] = None
    generation_parameters: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "type": _enum_value(self.type),
            "name": self.name,
            "description": self.description,
            "file_path": self.file_path,
            "generation_prompt": self.generation_prompt,
            "generation_parameters": dict(self.generation_parameters),
            "status": _enum_value(self.status),
            "created_at": self.created_at,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            type=AssetType(data["type"]),
            name=data["name"],
            description=data.get("description"),
            file_path=data.get("file_path"),
            generation_prompt=data.get("generation_prompt", ""),
            generation_parameters=dict(data.get("generation_parameters") or {}),
            status=AssetStatus(data["status"]),
            created_at=data["created_at"],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class GenerationJob:
    """Generation job domain entity. Owned by exactly one asset."""
    id: str
    asset_id: str
    status: JobStatus
    progress: int
    created_at: str
    error_message: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "status": _enum_value(self.status),
            "progress": self.progress,
            "error_message": self.error_message,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationJob":
        return cls(
            id=data["id"],
            asset_id=data["asset_id"],
            status=JobStatus(data["status"]),
            progress=int(data.get("progress", 0)),
            error_message=data.get("error_message"),
            created_at=data["created_at"],
            completed_at=data.get("completed_at"),
        )


@dataclass
class PromptHistory:
    """Audit record of an original prompt and what it was enhanced to."""
    id: str
    project_id: str
    original_prompt: str
    version: int
    created_at: str
    asset_id: Optional[str] = None
    enhanced_prompt: Optional[str] = None
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "asset_id": self.asset_id,
            "original_prompt": self.original_prompt,
            "enhanced_prompt": self.enhanced_prompt,
            "version": self.version,
            "parent_id": self.parent_id,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptHistory":
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            asset_id=data.get("asset_id"),
            original_prompt=data["original_prompt"],
            enhanced_prompt=data.get("enhanced_prompt"),
            version=int(data["version"]),
            parent_id=data.get("parent_id"),
            metadata=dict(data.get("metadata") or {}),
            created_at=data["created_at"],
        )


@dataclass
class PromptComponent:
    """One typed, weighted piece of a prompt."""
    id: str
    type: ComponentType
    label: str
    value: str
    description: Optional[str] = None
    weight: int = 5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": _enum_value(self.type),
            "label": self.label,
            "value": self.value,
            "description": self.description,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptComponent":
        return cls(
            id=data["id"],
            type=ComponentType(data["type"]),
            label=data.get("label", ""),
            value=data.get("value", ""),
            description=data.get("description"),
            weight=int(data.get("weight") or 5),
        )


@dataclass
class PromptBreakdown:
    """A prompt decomposed into components."""
    id: str
    original_prompt: str
    components: List[PromptComponent]
    reconstructed_prompt: str
    created_at: str
    project_id: Optional[str] = None
    asset_type: Optional[AssetType] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "original_prompt": self.original_prompt,
            "components": [c.to_dict() for c in self.components],
            "reconstructed_prompt": self.reconstructed_prompt,
            "created_at": self.created_at,
            "project_id": self.project_id,
            "asset_type": _enum_value(self.asset_type),
        }


@dataclass
class PromptTemplate:
    """Reusable prompt skeleton for an asset type."""
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

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "asset_type": _enum_value(self.asset_type),
            "category": self.category,
            "components": [dict(c) for c in self.components],
            "example_prompt": self.example_prompt,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptTemplate":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            asset_type=AssetType(data["asset_type"]),
            category=data.get("category", ""),
            components=list(data.get("components", [])),
            example_prompt=data.get("example_prompt", ""),
            tags=list(data.get("tags", [])),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


@dataclass
class PromptSuggestion:
    """A proposed edit to a prompt."""
    id: str
    type: SuggestionType
    title: str
    description: str
    suggested_change: str
    confidence: float
    category: str
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": _enum_value(self.type),
            "title": self.title,
            "description": self.description,
            "suggested_change": self.suggested_change,
            "confidence": self.confidence,
            "category": self.category,
            "reasoning": self.reasoning,
        }


@dataclass
class PromptScore:
    """Quality score of a prompt with feedback."""
    score: int
    feedback: str
    suggestions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "feedback": self.feedback,
            "suggestions": list(self.suggestions),
        }


@dataclass
class AICredentials:
    """Caller-supplied AI provider selection and key."""
    provider: str
    model: str
    api_key: str


@dataclass
class StyleOverride:
    """Per-request replacement for the project's art style."""
    description: Optional[str] = None
    keywords: Optional[List[str]] = None


@dataclass
class GenerationRequest:
    """Everything needed to start a generation."""
    project_id: str
    type: AssetType
    name: str
    generation_prompt: str
    description: Optional[str] = None
    generation_parameters: Dict[str, Any] = field(default_factory=dict)
    style_override: Optional[StyleOverride] = None
    ai_credentials: Optional[AICredentials] = None
