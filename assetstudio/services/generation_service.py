"""Generation service - job lifecycle for asset generation.

start() creates the asset and its job synchronously, then hands the rest of
the work to a background asyncio task. Callers learn the outcome only by
polling get_status().
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Dict, Set, Awaitable, Callable

from assetstudio.errors import GenerationCancelled, GenerationFailure, NotFoundError
from assetstudio.models.domain import (
    Asset,
    AssetStatus,
    AssetType,
    GenerationJob,
    GenerationRequest,
    JobStatus,
    Project,
)
from assetstudio.repositories.asset_repository import AssetRepository
from assetstudio.repositories.job_repository import JobRepository
from assetstudio.repositories.project_repository import ProjectRepository
from assetstudio.services.config_service import CheckpointSchedule, get_config_service
from assetstudio.services.prompt_service import EnhancedPrompt, PromptService

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Generation cancelled by user"

ProgressCallback = Callable[[int], Awaitable[None]]


class Generator(ABC):
    """Produces an asset's content, reporting progress as it goes."""

    @abstractmethod
    async def generate(self, asset: Asset, prompt: str, report_progress: ProgressCallback):
        pass


class SimulatedGenerator(Generator):
    """Walks the configured checkpoints for the asset's type, sleeping before each."""

    def __init__(self, schedules: Optional[Dict[AssetType, CheckpointSchedule]] = None):
        if schedules is None:
            schedules = get_config_service().get_checkpoint_schedules()
        self.schedules = schedules

    async def generate(self, asset: Asset, prompt: str, report_progress: ProgressCallback):
        schedule = self.schedules.get(asset.type)
        if schedule is None:
            raise GenerationFailure(f"No checkpoint schedule for asset type '{asset.type.value}'")

        for step in schedule.steps:
            await asyncio.sleep(schedule.delay_seconds)
            await report_progress(step)


@dataclass
class StartedGeneration:
    """What start() hands back before any background work runs."""
    asset: Asset
    job: GenerationJob


@dataclass
class _RunState:
    enhanced: Optional[EnhancedPrompt] = None
    history_id: Optional[str] = None


class GenerationService:
    """
    Service for generation job orchestration.

    Responsibilities:
    - Create the asset and job for a generation request
    - Drive job progress and asset status from a background task
    - Cancel, poll and clean up jobs

    Does NOT:
    - Handle HTTP requests (that's API layer)
    - Decide how prompts are enhanced (that's PromptService)

    Cancellation is cooperative: every progress update goes through
    JobRepository.update_active, so once a job is terminal the task stops at
    its next checkpoint instead of overwriting the cancelled records.
    """

    def __init__(
        self,
        project_repo: ProjectRepository,
        asset_repo: AssetRepository,
        job_repo: JobRepository,
        prompt_service: PromptService,
        generator: Optional[Generator] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.project_repo = project_repo
        self.asset_repo = asset_repo
        self.job_repo = job_repo
        self.prompt_service = prompt_service
        self.generator = generator or SimulatedGenerator()
        self.timeout_seconds = timeout_seconds
        self._tasks: Set[asyncio.Task] = set()

    async def start(self, request: GenerationRequest) -> StartedGeneration:
        """
        Start generating an asset.

        Business rules:
        - AI credentials, if any, must name the supported provider
        - Project must exist
        - Nothing is created when either rule fails
        """
        self.prompt_service.validate_credentials(request.ai_credentials)

        project = await asyncio.to_thread(self.project_repo.get, request.project_id)
        if not project:
            raise NotFoundError(f"Project {request.project_id} not found")

        asset = await asyncio.to_thread(self.asset_repo.create, {
            "project_id": project.id,
            "type": request.type,
            "name": request.name,
            "description": request.description,
            "generation_prompt": request.generation_prompt,
            "generation_parameters": dict(request.generation_parameters or {}),
            "status": AssetStatus.PENDING,
        })
        job = await asyncio.to_thread(self.job_repo.create, {"asset_id": asset.id})

        logger.info(
            "Started %s generation job %s for asset %s in project %s",
            asset.type.value, job.id, asset.id, project.id,
        )

        task = asyncio.create_task(self._run(job.id, asset, project, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return StartedGeneration(asset=asset, job=job)

    async def get_status(self, asset_id: str) -> Optional[GenerationJob]:
        """Most recently created job for an asset, or None."""
        jobs = await asyncio.to_thread(self.job_repo.list_by_asset, asset_id)
        return jobs[-1] if jobs else None

    async def get_job(self, job_id: str) -> Optional[GenerationJob]:
        return await asyncio.to_thread(self.job_repo.get, job_id)

    async def list_active_jobs(self) -> List[GenerationJob]:
        return await asyncio.to_thread(self.job_repo.get_active_jobs)

    async def cleanup_old_jobs(self, days_old: int = 30) -> int:
        return await asyncio.to_thread(self.job_repo.cleanup_old_jobs, days_old)

    async def cancel(self, job_id: str) -> bool:
        """
        Cancel a queued or processing job.

        Returns False if the job does not exist or is already terminal;
        in that case neither the job nor its asset is touched.
        """
        job = await asyncio.to_thread(
            self.job_repo.update_active,
            job_id,
            {"status": JobStatus.FAILED, "error_message": CANCELLED_MESSAGE},
        )
        if job is None:
            return False

        await asyncio.to_thread(self.asset_repo.update, job.asset_id, {"status": AssetStatus.FAILED})
        logger.info("Cancelled generation job %s", job_id)
        return True

    async def wait_for_tasks(self):
        """Wait until every background generation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        """Cancel outstanding background generations and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Stopped %d background generation(s)", len(tasks))

    # ------------------------------------------------------------------
    # Background task
    # ------------------------------------------------------------------

    async def _run(
        self,
        job_id: str,
        asset: Asset,
        project: Project,
        request: GenerationRequest,
    ):
        state = _RunState()
        try:
            if self.timeout_seconds is None:
                await self._process(job_id, asset, project, request, state)
            else:
                try:
                    await asyncio.wait_for(
                        self._process(job_id, asset, project, request, state),
                        timeout=self.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    raise GenerationFailure(
                        f"Generation timed out after {self.timeout_seconds:g}s"
                    )
        except GenerationCancelled:
            logger.info("Generation job %s is no longer active, stopping", job_id)
            await self._ensure_asset_failed(asset.id)
        except Exception as e:
            logger.exception("Generation job %s failed", job_id)
            await self._fail(job_id, asset, request, str(e) or type(e).__name__, state)

    async def _process(
        self,
        job_id: str,
        asset: Asset,
        project: Project,
        request: GenerationRequest,
        state: _RunState,
    ):
        await self._checkpoint(job_id, {"status": JobStatus.PROCESSING, "progress": 10})
        await asyncio.to_thread(self.asset_repo.update, asset.id, {"status": AssetStatus.GENERATING})

        state.enhanced = await self.prompt_service.enhance_detailed(
            request.generation_prompt,
            project,
            request.style_override,
            request.ai_credentials,
            asset.type,
        )

        history = await asyncio.to_thread(
            self.prompt_service.save_history,
            project.id,
            request.generation_prompt,
            state.enhanced.text,
            asset.id,
            _history_metadata(state.enhanced),
        )
        state.history_id = history.id

        await self._checkpoint(job_id, {"progress": 30})

        async def report_progress(progress: int):
            await self._checkpoint(job_id, {"progress": progress})

        await self.generator.generate(asset, state.enhanced.text, report_progress)

        await self._checkpoint(job_id, {"status": JobStatus.COMPLETED, "progress": 100})
        await asyncio.to_thread(self.asset_repo.update, asset.id, {
            "status": AssetStatus.COMPLETED,
            "generation_prompt": state.enhanced.text,
        })
        logger.info("Generation job %s completed", job_id)

    async def _checkpoint(self, job_id: str, changes: Dict):
        job = await asyncio.to_thread(self.job_repo.update_active, job_id, changes)
        if job is None:
            raise GenerationCancelled(f"Job {job_id} is no longer active")

    async def _fail(
        self,
        job_id: str,
        asset: Asset,
        request: GenerationRequest,
        message: str,
        state: _RunState,
    ):
        """Record a failure on the job, the asset and the prompt history."""
        try:
            job = await asyncio.to_thread(
                self.job_repo.update_active,
                job_id,
                {"status": JobStatus.FAILED, "error_message": message},
            )
            if job is None:
                logger.info("Generation job %s was already terminal when it failed", job_id)
        except Exception:
            logger.exception("Could not mark generation job %s as failed", job_id)

        await self._ensure_asset_failed(asset.id)

        feedback = f"Generation failed: {message}"
        try:
            if state.history_id:
                await asyncio.to_thread(
                    self.prompt_service.tag_history, state.history_id, {"feedback": feedback}
                )
            else:
                metadata = _history_metadata(state.enhanced)
                metadata["feedback"] = feedback
                await asyncio.to_thread(
                    self.prompt_service.save_history,
                    asset.project_id,
                    request.generation_prompt,
                    state.enhanced.text if state.enhanced else None,
                    asset.id,
                    metadata,
                )
        except Exception:
            logger.exception("Could not record prompt history for failed job %s", job_id)

    async def _ensure_asset_failed(self, asset_id: str):
        try:
            await asyncio.to_thread(self.asset_repo.update, asset_id, {"status": AssetStatus.FAILED})
        except Exception:
            logger.exception("Could not mark asset %s as failed", asset_id)


def _history_metadata(enhanced: Optional[EnhancedPrompt]) -> Dict:
    if enhanced is None:
        return {"enhancement_type": "manual"}

    metadata = {"enhancement_type": enhanced.enhancement_type.value}
    if enhanced.used_ai:
        metadata["ai_provider"] = enhanced.provider
        metadata["ai_model"] = enhanced.model
    return metadata
