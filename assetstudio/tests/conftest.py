"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add repo root for imports when the package is not installed
repo_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(repo_root))

import pytest

from assetstudio.models.domain import AssetType
from assetstudio.repositories.asset_repository import AssetRepository
from assetstudio.repositories.document_store import DocumentStore
from assetstudio.repositories.job_repository import JobRepository
from assetstudio.repositories.project_repository import ProjectRepository
from assetstudio.repositories.prompt_repository import PromptRepository
from assetstudio.services.config_service import CheckpointSchedule


DEFAULT_TEMPLATES = [
    {
        "name": "Landscape Photography",
        "description": "Professional landscape photography template",
        "asset_type": "image",
        "category": "landscape",
        "components": [{"type": "subject", "label": "Scene"}],
        "example_prompt": "Mountain landscape, golden hour lighting, 4k",
        "tags": ["nature", "photography"],
    },
    {
        "name": "Video Scene",
        "description": "Cinematic video scene template",
        "asset_type": "video",
        "category": "cinematic",
        "components": [{"type": "camera", "label": "Camera Movement"}],
        "example_prompt": "Person walking through a forest, tracking shot",
        "tags": ["cinematic", "nature"],
    },
]


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    """Initialized store with backups disabled."""
    store = DocumentStore(data_dir, enable_backups=False)
    store.initialize()
    return store


@pytest.fixture
def backup_store(data_dir):
    """Initialized store keeping the five most recent backups."""
    store = DocumentStore(data_dir, enable_backups=True, max_backups=5)
    store.initialize()
    return store


@pytest.fixture
def project_repo(store):
    return ProjectRepository(store)


@pytest.fixture
def asset_repo(store):
    return AssetRepository(store)


@pytest.fixture
def job_repo(store):
    return JobRepository(store)


@pytest.fixture
def prompt_repo(store):
    repo = PromptRepository(store, DEFAULT_TEMPLATES)
    repo.initialize()
    return repo


@pytest.fixture
def project(project_repo):
    """A project with an art style."""
    return project_repo.create({
        "name": "Forest Game",
        "description": "Assets for a forest level",
        "context": "Cozy exploration game",
        "art_style": {
            "description": "Soft watercolor",
            "style_keywords": ["pastel", "hand-painted"],
        },
    })


@pytest.fixture
def instant_schedules():
    """Checkpoint schedules with no delay between steps."""
    return {
        AssetType.VIDEO: CheckpointSchedule(steps=[20, 40, 60, 80, 90], delay_seconds=0.0),
        AssetType.PROMPT: CheckpointSchedule(steps=[30, 60, 90], delay_seconds=0.0),
        AssetType.IMAGE: CheckpointSchedule(steps=[50, 70, 90], delay_seconds=0.0),
    }
