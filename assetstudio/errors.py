"""Error kinds raised by the store, repositories and services.

The API layer is the only place these are mapped to HTTP status codes.
"""

from dataclasses import dataclass
from typing import List


class AssetStudioError(Exception):
    """Base class for all application errors."""


@dataclass
class FieldError:
    """A single schema violation."""
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class ValidationError(AssetStudioError):
    """Entity failed schema validation.

    Carries every violated field, not just the first one, so a client can
    fix all problems in one round trip.
    """

    def __init__(self, entity: str, errors: List[FieldError]):
        self.entity = entity
        self.errors = list(errors)
        details = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Invalid {entity}: {details}")


class NotFoundError(AssetStudioError, LookupError):
    """Entity or file is absent."""


class DocumentNotFoundError(NotFoundError):
    """A document path does not exist in the store."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class CorruptDataError(AssetStudioError):
    """JSON document is unparsable and no backup could recover it."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt JSON document {path}: {reason}")


class UnsupportedProviderError(AssetStudioError):
    """AI credentials name a provider other than the supported one."""

    def __init__(self, provider: str, supported: str):
        self.provider = provider
        self.supported = supported
        super().__init__(
            f"Unsupported AI provider '{provider}'. Supported: {supported}"
        )


class AIProviderError(AssetStudioError):
    """The supported provider's call failed (network, auth, bad response)."""


class GenerationFailure(AssetStudioError):
    """A background generation step failed.

    Recorded on the job and asset; never raised to an HTTP caller.
    """


class GenerationCancelled(AssetStudioError):
    """Raised inside a background task when its job was cancelled."""
