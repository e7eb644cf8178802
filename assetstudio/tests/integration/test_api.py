"""Integration tests for API endpoints."""

import time

import pytest
from fastapi.testclient import TestClient

import assetstudio.api as api_module
from assetstudio.repositories.document_store import DocumentStore
from assetstudio.server import app
from assetstudio.services.generation_service import GenerationService, SimulatedGenerator


@pytest.fixture
def client(tmp_path, instant_schedules):
    """Test client over a fresh data directory and instant generation."""
    api_module.reset_services(DocumentStore(tmp_path / "data", enable_backups=False))
    api_module._generation_service = GenerationService(
        api_module.get_project_repo(),
        api_module.get_asset_repo(),
        api_module.get_job_repo(),
        api_module.get_prompt_service(),
        generator=SimulatedGenerator(instant_schedules),
    )

    with TestClient(app) as test_client:
        yield test_client

    api_module.reset_services()


@pytest.fixture
def project_id(client):
    response = client.post("/api/projects", json={
        "name": "Forest Game",
        "description": "Assets for a forest level",
        "art_style": {"description": "Soft watercolor", "style_keywords": ["pastel"]},
    })
    return response.json()["id"]


def _wait_for_job(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(f"/api/generate/status/{job_id}").json()
        if job["status"] in ("completed", "failed"):
            return job
        time.sleep(0.02)
    raise AssertionError(f"Job {job_id} did not finish in {timeout}s")


def _create_asset(project_id, name="Asset"):
    return api_module.get_asset_repo().create({
        "project_id": project_id,
        "type": "image",
        "name": name,
        "generation_prompt": "A tree",
    })


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestProjectAPI:
    """Test project CRUD API endpoints."""

    def test_create_project(self, client):
        response = client.post("/api/projects", json={"name": "Test Project"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Test Project"
        assert data["art_style"] == {"description": "", "reference_images": [], "style_keywords": []}
        assert data["created_at"].endswith("Z")

    def test_create_project_reports_all_errors(self, client):
        response = client.post("/api/projects", json={"name": "", "description": "d" * 501})

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert fields == {"name", "description"}

    def test_get_list_update_delete(self, client, project_id):
        assert client.get(f"/api/projects/{project_id}").json()["name"] == "Forest Game"
        assert client.get("/api/projects").json()["total"] == 1

        response = client.put(f"/api/projects/{project_id}", json={"context": "Level 1"})
        assert response.status_code == 200
        assert response.json()["context"] == "Level 1"
        assert response.json()["art_style"]["style_keywords"] == ["pastel"]

        assert client.delete(f"/api/projects/{project_id}").status_code == 204
        assert client.get(f"/api/projects/{project_id}").status_code == 404
        assert client.delete(f"/api/projects/{project_id}").status_code == 404

    def test_get_missing_project(self, client):
        response = client.get("/api/projects/nonexistent")

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

    def test_upload_style_images(self, client, project_id):
        response = client.post(
            f"/api/projects/{project_id}/style-images",
            files=[("files", ("ref.png", b"\x89PNG", "image/png"))],
        )

        assert response.status_code == 200
        images = response.json()["art_style"]["reference_images"]
        assert len(images) == 1
        assert images[0].startswith(f"projects/{project_id}/style/")
        assert images[0].endswith(".png")

    def test_upload_style_images_rejects_other_formats(self, client, project_id):
        response = client.post(
            f"/api/projects/{project_id}/style-images",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "files[0]"

    def test_list_assets_paginates(self, client, project_id):
        for i in range(3):
            _create_asset(project_id, name=f"asset-{i}")

        data = client.get(f"/api/projects/{project_id}/assets?page=2&limit=2").json()

        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert [a["name"] for a in data["assets"]] == ["asset-2"]

    def test_list_assets_missing_project(self, client):
        assert client.get("/api/projects/missing/assets").status_code == 404


class TestAssetAPI:

    def test_update_and_delete_asset(self, client, project_id):
        asset = _create_asset(project_id)

        response = client.put(f"/api/assets/{asset.id}", json={"name": "Renamed", "status": "completed"})
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["project_id"] == project_id

        assert client.delete(f"/api/assets/{asset.id}").status_code == 204
        assert client.get(f"/api/assets/{asset.id}").status_code == 404

    def test_invalid_status_rejected(self, client, project_id):
        asset = _create_asset(project_id)

        assert client.put(f"/api/assets/{asset.id}", json={"status": "done"}).status_code == 422

    def test_download(self, client, project_id):
        asset = _create_asset(project_id)
        asset_repo = api_module.get_asset_repo()

        assert client.get(f"/api/assets/{asset.id}/download").status_code == 404

        payload = asset_repo.get_file_path(project_id, "tree.png")
        asset_repo.store.write_file(payload, b"png-bytes")
        asset_repo.update(asset.id, {"file_path": payload.as_posix()})

        response = client.get(f"/api/assets/{asset.id}/download")
        assert response.status_code == 200
        assert response.content == b"png-bytes"


class TestGenerationAPI:
    """Test generation start, polling and cancellation."""

    def test_generate_prompt_end_to_end(self, client, project_id):
        response = client.post("/api/generate/prompt", json={
            "project_id": project_id,
            "name": "Forest",
            "generation_prompt": "A forest",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["asset"]["status"] == "pending"
        assert data["asset"]["type"] == "prompt"
        assert data["job"]["status"] == "queued"
        assert data["job"]["progress"] == 0

        job = _wait_for_job(client, data["job"]["id"])
        assert job["status"] == "completed"
        assert job["progress"] == 100

        asset = client.get(f"/api/assets/{data['asset']['id']}").json()
        assert asset["status"] == "completed"
        assert " Style: Soft watercolor" in asset["generation_prompt"]

        current = client.get(f"/api/assets/{data['asset']['id']}/generation").json()
        assert current["id"] == data["job"]["id"]

        history = client.get(f"/api/prompts/history/{project_id}").json()
        assert len(history) == 1
        assert history[0]["version"] == 1

    def test_generate_for_missing_project(self, client):
        response = client.post("/api/generate/image", json={
            "project_id": "missing",
            "name": "Nothing",
            "generation_prompt": "A void",
        })

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]
        assert client.get("/api/generate/active").json()["total"] == 0

    def test_generate_unknown_type(self, client, project_id):
        response = client.post("/api/generate/audio", json={
            "project_id": project_id,
            "name": "Song",
            "generation_prompt": "A tune",
        })

        assert response.status_code == 422

    def test_generate_unsupported_provider(self, client, project_id):
        response = client.post("/api/generate/image", json={
            "project_id": project_id,
            "name": "Fox",
            "generation_prompt": "A fox",
            "ai_credentials": {"provider": "openai", "model": "gpt-4", "api_key": "k"},
        })

        assert response.status_code == 400
        assert "openai" in response.json()["detail"]

    def test_cancel_finished_and_missing_jobs(self, client, project_id):
        started = client.post("/api/generate/prompt", json={
            "project_id": project_id,
            "name": "Forest",
            "generation_prompt": "A forest",
        }).json()
        _wait_for_job(client, started["job"]["id"])

        assert client.delete(f"/api/generate/cancel/{started['job']['id']}").status_code == 400
        assert client.delete("/api/generate/cancel/missing").status_code == 404

    def test_status_of_missing_job(self, client):
        assert client.get("/api/generate/status/missing").status_code == 404


class TestPromptAPI:

    def test_score(self, client):
        response = client.post("/api/prompts/score", json={"prompt": "cat"})

        assert response.status_code == 200
        assert response.json()["score"] == 30

    def test_breakdown(self, client):
        response = client.post("/api/prompts/breakdown", json={"prompt": "A fox, anime, 4k"})

        assert response.status_code == 200
        data = response.json()
        assert data["components"][0]["type"] == "subject"
        assert data["reconstructed_prompt"] == "A fox, anime, 4k"

    def test_suggestions(self, client):
        response = client.post("/api/prompts/suggestions", json={"prompt": "A fox", "count": 1})

        assert response.status_code == 200
        assert len(response.json()["suggestions"]) == 1

    def test_unsupported_provider(self, client):
        response = client.post("/api/prompts/score", json={
            "prompt": "A fox",
            "ai_credentials": {"provider": "openai", "model": "gpt-4", "api_key": "k"},
        })

        assert response.status_code == 400

    def test_templates(self, client):
        assert len(client.get("/api/prompts/templates").json()) == 3
        assert len(client.get("/api/prompts/templates?asset_type=video").json()) == 1

        response = client.post("/api/prompts/templates", json={
            "name": "Logo",
            "asset_type": "image",
            "tags": ["brand"],
        })
        assert response.status_code == 201
        assert [t["name"] for t in client.get("/api/prompts/templates?tags=brand").json()] == ["Logo"]

    def test_history(self, client, project_id):
        for _ in range(2):
            response = client.post("/api/prompts/history", json={
                "project_id": project_id,
                "original_prompt": "A fox",
                "enhanced_prompt": "A fox, watercolor",
            })
            assert response.status_code == 201

        history = client.get(f"/api/prompts/history/{project_id}").json()
        assert [h["version"] for h in history] == [2, 1]

    def test_history_for_missing_project(self, client):
        response = client.post("/api/prompts/history", json={
            "project_id": "missing",
            "original_prompt": "A fox",
        })

        assert response.status_code == 404
