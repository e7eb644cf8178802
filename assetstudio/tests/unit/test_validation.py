"""Tests for aggregated schema validation."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from assetstudio.errors import ValidationError
from assetstudio.models.validation import validate_asset, validate_job, validate_project


def _project(**overrides):
    document = {
        "id": "p1",
        "name": "Project",
        "description": "",
        "context": "",
        "art_style": {"description": "", "reference_images": [], "style_keywords": []},
        "created_at": "2024-01-01T00:00:00.000Z",
        "updated_at": "2024-01-01T00:00:00.000Z",
    }
    document.update(overrides)
    return document


def _asset(**overrides):
    document = {
        "id": "a1",
        "project_id": "p1",
        "type": "image",
        "name": "Asset",
        "description": None,
        "file_path": None,
        "generation_prompt": "prompt",
        "generation_parameters": {},
        "status": "pending",
        "created_at": "2024-01-01T00:00:00.000Z",
        "metadata": {},
    }
    document.update(overrides)
    return document


def _job(**overrides):
    document = {
        "id": "j1",
        "asset_id": "a1",
        "status": "queued",
        "progress": 0,
        "error_message": None,
        "created_at": "2024-01-01T00:00:00.000Z",
        "completed_at": None,
    }
    document.update(overrides)
    return document


def _fields(exc_info):
    return {e.field for e in exc_info.value.errors}


class TestProjectValidation:

    def test_valid_project_passes(self):
        validate_project(_project())

    def test_limits_are_inclusive(self):
        validate_project(_project(
            name="n" * 100,
            description="d" * 500,
            context="c" * 1000,
            art_style={"description": "a" * 2000, "reference_images": [], "style_keywords": []},
        ))

    def test_all_violations_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_project(_project(
                name="n" * 101,
                description=None,
                art_style={"description": "ok", "reference_images": "nope", "style_keywords": [1]},
                updated_at="yesterday",
            ))

        assert _fields(exc_info) == {
            "name",
            "description",
            "art_style.reference_images",
            "art_style.style_keywords.0",
            "updated_at",
        }
        assert "Invalid project" in str(exc_info.value)


class TestAssetValidation:

    def test_valid_asset_passes(self):
        validate_asset(_asset())

    def test_enum_and_map_violations(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_asset(_asset(type="audio", status="done", metadata=[], generation_parameters=None))

        assert _fields(exc_info) == {"type", "status", "metadata", "generation_parameters"}

    def test_error_payload_shape(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_asset(_asset(name=""))

        assert [e.to_dict() for e in exc_info.value.errors] == [
            {"field": "name", "message": "String should have at least 1 character"}
        ]

    def test_wraps_record_model_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_asset(_asset(name="n" * 101, created_at=None))

        assert isinstance(exc_info.value.__cause__, PydanticValidationError)
        assert _fields(exc_info) == {"name", "created_at"}


class TestJobValidation:

    @pytest.mark.parametrize("progress", [0, 55, 100])
    def test_progress_in_range(self, progress):
        validate_job(_job(progress=progress))

    @pytest.mark.parametrize("progress", [-1, 101, 50.5, True, "10"])
    def test_progress_rejected(self, progress):
        with pytest.raises(ValidationError) as exc_info:
            validate_job(_job(progress=progress))

        assert _fields(exc_info) == {"progress"}

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_job(_job(status="cancelled"))

        assert _fields(exc_info) == {"status"}
