"""Tests for the generation job lifecycle."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from assetstudio.errors import AIProviderError, NotFoundError, UnsupportedProviderError
from assetstudio.models.domain import (
    AICredentials,
    AssetStatus,
    AssetType,
    GenerationRequest,
    JobStatus,
)
from assetstudio.services.generation_service import (
    CANCELLED_MESSAGE,
    GenerationService,
    Generator,
    SimulatedGenerator,
)
from assetstudio.services.prompt_service import PromptService


class FailingGenerator(Generator):
    """Reports one checkpoint, then fails."""

    async def generate(self, asset, prompt, report_progress):
        await report_progress(50)
        raise RuntimeError("renderer crashed")


class GatedGenerator(Generator):
    """Blocks until released, recording every checkpoint it managed to report."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.reported = []

    async def generate(self, asset, prompt, report_progress):
        self.started.set()
        await self.release.wait()
        for step in (50, 70, 90):
            await report_progress(step)
            self.reported.append(step)


class SlowGenerator(Generator):

    async def generate(self, asset, prompt, report_progress):
        await asyncio.sleep(10)


class RecordingSchedules(SimulatedGenerator):
    """Simulated generator that remembers every progress value it reported."""

    def __init__(self, schedules):
        super().__init__(schedules)
        self.reported = []

    async def generate(self, asset, prompt, report_progress):
        async def record(progress):
            self.reported.append(progress)
            await report_progress(progress)

        await super().generate(asset, prompt, record)


@pytest.fixture
def prompt_service(prompt_repo):
    ai = Mock()
    ai.enhance_prompt = AsyncMock(side_effect=AIProviderError("offline"))
    ai.generate_text = AsyncMock(side_effect=AIProviderError("offline"))
    return PromptService(prompt_repo, ai_service=ai)


@pytest.fixture
def make_service(project_repo, asset_repo, job_repo, prompt_service, instant_schedules):
    def factory(generator=None, timeout_seconds=None):
        return GenerationService(
            project_repo,
            asset_repo,
            job_repo,
            prompt_service,
            generator=generator or SimulatedGenerator(instant_schedules),
            timeout_seconds=timeout_seconds,
        )
    return factory


def _request(project_id, asset_type=AssetType.PROMPT, **kwargs):
    return GenerationRequest(
        project_id=project_id,
        type=asset_type,
        name="Forest",
        generation_prompt="A forest",
        **kwargs,
    )


class TestGeneratorContract:

    def test_generator_requires_generate(self):
        class Incomplete(Generator):
            pass

        with pytest.raises(TypeError):
            Incomplete()


class TestStart:

    def test_returns_pending_asset_and_queued_job(self, make_service, project):
        service = make_service()

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started

        started = asyncio.run(scenario())

        assert started.asset.status == AssetStatus.PENDING
        assert started.asset.type == AssetType.PROMPT
        assert started.job.status == JobStatus.QUEUED
        assert started.job.progress == 0
        assert started.job.asset_id == started.asset.id

    def test_missing_project_creates_nothing(self, make_service, store, job_repo):
        service = make_service()

        with pytest.raises(NotFoundError, match="not found"):
            asyncio.run(service.start(_request("missing")))

        assert job_repo.list() == []
        assert store.list_files("projects") == ["projects.json"]

    def test_unsupported_provider_rejected_before_records(self, make_service, project, job_repo, asset_repo):
        service = make_service()
        request = _request(
            project.id,
            ai_credentials=AICredentials(provider="openai", model="gpt-4", api_key="k"),
        )

        with pytest.raises(UnsupportedProviderError):
            asyncio.run(service.start(request))

        assert job_repo.list() == []
        assert asset_repo.list_by_project(project.id) == []


class TestLifecycle:

    def test_completes_and_stores_enhanced_prompt(self, make_service, project, asset_repo, prompt_repo):
        service = make_service()

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started, await service.get_status(started.asset.id)

        started, job = asyncio.run(scenario())

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.completed_at is not None

        asset = asset_repo.get(started.asset.id)
        assert asset.status == AssetStatus.COMPLETED
        assert asset.generation_prompt == "A forest Style: Soft watercolor Keywords: pastel, hand-painted"

        history = prompt_repo.list_history(project.id, started.asset.id)
        assert len(history) == 1
        assert history[0].version == 1
        assert history[0].original_prompt == "A forest"
        assert history[0].enhanced_prompt == asset.generation_prompt
        assert history[0].metadata == {"enhancement_type": "manual"}

    @pytest.mark.parametrize("asset_type, expected", [
        (AssetType.PROMPT, [30, 60, 90]),
        (AssetType.IMAGE, [50, 70, 90]),
        (AssetType.VIDEO, [20, 40, 60, 80, 90]),
    ])
    def test_walks_type_specific_checkpoints(
        self, make_service, project, instant_schedules, asset_type, expected
    ):
        generator = RecordingSchedules(instant_schedules)
        service = make_service(generator=generator)

        async def scenario():
            await service.start(_request(project.id, asset_type=asset_type))
            await service.wait_for_tasks()

        asyncio.run(scenario())

        assert generator.reported == expected

    def test_get_status_returns_latest_job(self, make_service, project, job_repo):
        service = make_service()

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            retry = await asyncio.to_thread(job_repo.create, {"asset_id": started.asset.id})
            return retry, await service.get_status(started.asset.id)

        retry, current = asyncio.run(scenario())

        assert current.id == retry.id
        assert current.status == JobStatus.QUEUED

    def test_get_status_unknown_asset(self, make_service):
        assert asyncio.run(make_service().get_status("nobody")) is None

    def test_generator_failure_marks_job_and_asset_failed(self, make_service, project, asset_repo, prompt_repo):
        service = make_service(generator=FailingGenerator())

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started, await service.get_job(started.job.id)

        started, job = asyncio.run(scenario())

        assert job.status == JobStatus.FAILED
        assert job.error_message == "renderer crashed"
        assert job.progress == 50
        assert asset_repo.get(started.asset.id).status == AssetStatus.FAILED

        history = prompt_repo.list_history(project.id, started.asset.id)
        assert len(history) == 1
        assert history[0].metadata["feedback"] == "Generation failed: renderer crashed"

    def test_enhancement_failure_still_records_history(
        self, make_service, project, prompt_service, prompt_repo
    ):
        prompt_service.enhance_detailed = AsyncMock(side_effect=RuntimeError("style merge exploded"))
        service = make_service()

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started, await service.get_job(started.job.id)

        started, job = asyncio.run(scenario())

        assert job.status == JobStatus.FAILED
        history = prompt_repo.list_history(project.id, started.asset.id)
        assert len(history) == 1
        assert history[0].enhanced_prompt is None
        assert history[0].metadata["feedback"] == "Generation failed: style merge exploded"

    def test_timeout_fails_job(self, make_service, project, asset_repo):
        service = make_service(generator=SlowGenerator(), timeout_seconds=0.05)

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started, await service.get_job(started.job.id)

        started, job = asyncio.run(scenario())

        assert job.status == JobStatus.FAILED
        assert job.error_message == "Generation timed out after 0.05s"
        assert asset_repo.get(started.asset.id).status == AssetStatus.FAILED


class TestCancel:

    def test_cancel_in_flight_job_stops_at_next_checkpoint(self, make_service, project, asset_repo):
        generator = GatedGenerator()
        service = make_service(generator=generator)

        async def scenario():
            started = await service.start(_request(project.id))
            await generator.started.wait()
            cancelled = await service.cancel(started.job.id)
            generator.release.set()
            await service.wait_for_tasks()
            return started, cancelled, await service.get_job(started.job.id)

        started, cancelled, job = asyncio.run(scenario())

        assert cancelled is True
        assert job.status == JobStatus.FAILED
        assert job.error_message == CANCELLED_MESSAGE
        assert job.progress == 30
        assert generator.reported == []
        assert asset_repo.get(started.asset.id).status == AssetStatus.FAILED

    def test_cancel_queued_job(self, make_service, project, asset_repo, job_repo):
        asset = asset_repo.create({
            "project_id": project.id,
            "type": "image",
            "name": "Queued",
            "generation_prompt": "A forest",
        })
        queued = job_repo.create({"asset_id": asset.id})

        cancelled = asyncio.run(make_service().cancel(queued.id))

        job = job_repo.get(queued.id)
        assert cancelled is True
        assert job.status == JobStatus.FAILED
        assert job.error_message == CANCELLED_MESSAGE
        assert job.progress == 0
        assert job.completed_at is not None
        assert asset_repo.get(asset.id).status == AssetStatus.FAILED

    def test_cancel_completed_job_is_noop(self, make_service, project, asset_repo, job_repo):
        service = make_service()

        async def scenario():
            started = await service.start(_request(project.id))
            await service.wait_for_tasks()
            return started, await service.cancel(started.job.id)

        started, cancelled = asyncio.run(scenario())

        assert cancelled is False
        assert job_repo.get(started.job.id).status == JobStatus.COMPLETED
        assert asset_repo.get(started.asset.id).status == AssetStatus.COMPLETED

    def test_cancel_unknown_job(self, make_service):
        assert asyncio.run(make_service().cancel("missing")) is False


class TestHousekeeping:

    def test_list_active_jobs(self, make_service, project):
        generator = GatedGenerator()
        service = make_service(generator=generator)

        async def scenario():
            started = await service.start(_request(project.id))
            await generator.started.wait()
            active = await service.list_active_jobs()
            generator.release.set()
            await service.wait_for_tasks()
            return started, active, await service.list_active_jobs()

        started, active_during, active_after = asyncio.run(scenario())

        assert [j.id for j in active_during] == [started.job.id]
        assert active_during[0].status == JobStatus.PROCESSING
        assert active_after == []

    def test_shutdown_cancels_background_tasks(self, make_service, project):
        generator = GatedGenerator()
        service = make_service(generator=generator)

        async def scenario():
            await service.start(_request(project.id))
            await generator.started.wait()
            await service.shutdown()
            return generator.reported

        assert asyncio.run(scenario()) == []
