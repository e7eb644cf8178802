"""REST API endpoints for Asset Studio."""

import asyncio
from typing import Optional, List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, Response

from assetstudio.models.domain import AssetType, GenerationRequest
from assetstudio.models.dto import (
    ActiveJobsResponse,
    AssetDTO,
    AssetListResponse,
    AssetUpdateRequest,
    CancelResponse,
    GenerateRequest,
    GenerateResponse,
    JobDTO,
    ProjectCreateRequest,
    ProjectDTO,
    ProjectListResponse,
    ProjectUpdateRequest,
    PromptBreakdownDTO,
    PromptHistoryCreateRequest,
    PromptHistoryDTO,
    PromptRequest,
    PromptScoreDTO,
    PromptSuggestionDTO,
    PromptSuggestionsResponse,
    PromptTemplateCreateRequest,
    PromptTemplateDTO,
)
from assetstudio.repositories.asset_repository import AssetRepository
from assetstudio.repositories.document_store import DocumentStore
from assetstudio.repositories.job_repository import JobRepository
from assetstudio.repositories.project_repository import ProjectRepository
from assetstudio.repositories.prompt_repository import PromptRepository
from assetstudio.services.config_service import get_config_service
from assetstudio.services.generation_service import GenerationService
from assetstudio.services.project_service import ProjectService
from assetstudio.services.prompt_service import PromptService

router = APIRouter()

_store = None
_project_repo = None
_asset_repo = None
_job_repo = None
_prompt_repo = None
_project_service = None
_prompt_service = None
_generation_service = None


def get_store() -> DocumentStore:
    """Get document store instance."""
    global _store
    if _store is None:
        _store = DocumentStore()
    return _store


def get_project_repo() -> ProjectRepository:
    """Get project repository instance."""
    global _project_repo
    if _project_repo is None:
        _project_repo = ProjectRepository(get_store())
    return _project_repo


def get_asset_repo() -> AssetRepository:
    """Get asset repository instance."""
    global _asset_repo
    if _asset_repo is None:
        _asset_repo = AssetRepository(get_store())
    return _asset_repo


def get_job_repo() -> JobRepository:
    """Get job repository instance."""
    global _job_repo
    if _job_repo is None:
        _job_repo = JobRepository(get_store())
    return _job_repo


def get_prompt_repo() -> PromptRepository:
    """Get prompt repository instance."""
    global _prompt_repo
    if _prompt_repo is None:
        _prompt_repo = PromptRepository(
            get_store(),
            get_config_service().get_default_templates(),
        )
    return _prompt_repo


def get_project_service() -> ProjectService:
    """Get project service instance."""
    global _project_service
    if _project_service is None:
        _project_service = ProjectService(get_project_repo(), get_asset_repo())
    return _project_service


def get_prompt_service() -> PromptService:
    """Get prompt service instance."""
    global _prompt_service
    if _prompt_service is None:
        _prompt_service = PromptService(
            get_prompt_repo(),
            supported_provider=get_config_service().get_supported_provider(),
        )
    return _prompt_service


def get_generation_service() -> GenerationService:
    """Get generation service instance."""
    global _generation_service
    if _generation_service is None:
        _generation_service = GenerationService(
            get_project_repo(),
            get_asset_repo(),
            get_job_repo(),
            get_prompt_service(),
            timeout_seconds=get_config_service().get_generation_timeout(),
        )
    return _generation_service


def reset_services(store: Optional[DocumentStore] = None):
    """Drop every cached instance, optionally pointing them at another store."""
    global _store, _project_repo, _asset_repo, _job_repo, _prompt_repo
    global _project_service, _prompt_service, _generation_service
    _store = store
    _project_repo = None
    _asset_repo = None
    _job_repo = None
    _prompt_repo = None
    _project_service = None
    _prompt_service = None
    _generation_service = None


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------

@router.get("/projects", response_model=ProjectListResponse)
def list_projects(project_service: ProjectService = Depends(get_project_service)):
    """List all projects."""
    return project_service.list_projects()


@router.post("/projects", response_model=ProjectDTO, status_code=201)
def create_project(
    request: ProjectCreateRequest,
    project_service: ProjectService = Depends(get_project_service),
):
    """Create a new project."""
    return project_service.create_project(request)


@router.get("/projects/{project_id}", response_model=ProjectDTO)
def get_project(
    project_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """Get project details."""
    project = project_service.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.put("/projects/{project_id}", response_model=ProjectDTO)
def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    project_service: ProjectService = Depends(get_project_service),
):
    """Update a project."""
    project = project_service.update_project(project_id, request)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(
    project_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """Delete a project and all its assets."""
    if not project_service.delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return Response(status_code=204)


@router.post("/projects/{project_id}/style-images", response_model=ProjectDTO)
async def upload_style_images(
    project_id: str,
    files: List[UploadFile] = File(...),
    project_service: ProjectService = Depends(get_project_service),
):
    """Upload style reference images for a project."""
    uploads = []
    for upload in files:
        if not upload.filename:
            raise HTTPException(status_code=400, detail="No filename provided")
        uploads.append((upload.filename, await upload.read()))

    return await asyncio.to_thread(project_service.save_style_images, project_id, uploads)


@router.get("/projects/{project_id}/assets", response_model=AssetListResponse)
def list_project_assets(
    project_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    project_service: ProjectService = Depends(get_project_service),
):
    """List a project's assets, one page at a time."""
    return project_service.list_assets(project_id, page, limit)


# ----------------------------------------------------------------------
# Assets
# ----------------------------------------------------------------------

@router.get("/assets/{asset_id}", response_model=AssetDTO)
def get_asset(
    asset_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """Get asset details."""
    asset = project_service.get_asset(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@router.put("/assets/{asset_id}", response_model=AssetDTO)
def update_asset(
    asset_id: str,
    request: AssetUpdateRequest,
    project_service: ProjectService = Depends(get_project_service),
):
    """Update an asset."""
    asset = project_service.update_asset(asset_id, request)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@router.delete("/assets/{asset_id}", status_code=204)
def delete_asset(
    asset_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """Delete an asset and its file."""
    if not project_service.delete_asset(asset_id):
        raise HTTPException(status_code=404, detail="Asset not found")
    return Response(status_code=204)


@router.get("/assets/{asset_id}/download")
def download_asset(
    asset_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """Download an asset's generated file."""
    path, file_name = project_service.get_asset_download(asset_id)
    return FileResponse(path, filename=file_name)


@router.get("/assets/{asset_id}/generation", response_model=JobDTO)
async def get_asset_generation(
    asset_id: str,
    generation_service: GenerationService = Depends(get_generation_service),
):
    """Current generation job of an asset."""
    job = await generation_service.get_status(asset_id)
    if not job:
        raise HTTPException(status_code=404, detail="No generation job for asset")
    return JobDTO.model_validate(job)


# ----------------------------------------------------------------------
# Generation
# ----------------------------------------------------------------------

@router.get("/generate/active", response_model=ActiveJobsResponse)
async def list_active_jobs(
    generation_service: GenerationService = Depends(get_generation_service),
):
    """List queued and processing jobs."""
    jobs = await generation_service.list_active_jobs()
    return ActiveJobsResponse(
        jobs=[JobDTO.model_validate(j) for j in jobs],
        total=len(jobs),
    )


@router.get("/generate/status/{job_id}", response_model=JobDTO)
async def get_job_status(
    job_id: str,
    generation_service: GenerationService = Depends(get_generation_service),
):
    """Poll a generation job."""
    job = await generation_service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobDTO.model_validate(job)


@router.delete("/generate/cancel/{job_id}", response_model=CancelResponse)
async def cancel_job(
    job_id: str,
    generation_service: GenerationService = Depends(get_generation_service),
):
    """Cancel a queued or processing job."""
    if not await generation_service.get_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")

    if not await generation_service.cancel(job_id):
        raise HTTPException(status_code=400, detail="Job cannot be cancelled")

    return CancelResponse(cancelled=True, message="Generation cancelled")


@router.post("/generate/{asset_type}", response_model=GenerateResponse, status_code=201)
async def generate_asset(
    asset_type: AssetType,
    request: GenerateRequest,
    generation_service: GenerationService = Depends(get_generation_service),
):
    """Start generating an asset. Poll /generate/status/{job_id} for progress."""
    started = await generation_service.start(GenerationRequest(
        project_id=request.project_id,
        type=asset_type,
        name=request.name,
        description=request.description,
        generation_prompt=request.generation_prompt,
        generation_parameters=request.generation_parameters,
        style_override=request.style_override.to_domain() if request.style_override else None,
        ai_credentials=request.ai_credentials.to_domain() if request.ai_credentials else None,
    ))

    return GenerateResponse(
        asset=AssetDTO.model_validate(started.asset),
        job=JobDTO.model_validate(started.job),
        message=f"{asset_type.value.capitalize()} generation started",
    )


# ----------------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------------

async def _load_project(project_repo: ProjectRepository, project_id: Optional[str]):
    if not project_id:
        return None
    return await asyncio.to_thread(project_repo.get, project_id)


@router.post("/prompts/breakdown", response_model=PromptBreakdownDTO)
async def breakdown_prompt(
    request: PromptRequest,
    prompt_service: PromptService = Depends(get_prompt_service),
):
    """Break a prompt into typed, weighted components."""
    breakdown = await prompt_service.breakdown(
        request.prompt,
        project_id=request.project_id,
        asset_type=request.asset_type,
        credentials=request.ai_credentials.to_domain() if request.ai_credentials else None,
    )
    return PromptBreakdownDTO.model_validate(breakdown)


@router.post("/prompts/suggestions", response_model=PromptSuggestionsResponse)
async def suggest_prompt_improvements(
    request: PromptRequest,
    prompt_service: PromptService = Depends(get_prompt_service),
    project_repo: ProjectRepository = Depends(get_project_repo),
):
    """Suggest improvements to a prompt."""
    suggestions = await prompt_service.suggest(
        request.prompt,
        project=await _load_project(project_repo, request.project_id),
        asset_type=request.asset_type,
        credentials=request.ai_credentials.to_domain() if request.ai_credentials else None,
        count=request.count,
    )
    return PromptSuggestionsResponse(
        suggestions=[PromptSuggestionDTO.model_validate(s) for s in suggestions]
    )


@router.post("/prompts/score", response_model=PromptScoreDTO)
async def score_prompt(
    request: PromptRequest,
    prompt_service: PromptService = Depends(get_prompt_service),
    project_repo: ProjectRepository = Depends(get_project_repo),
):
    """Score a prompt from 0 to 100."""
    score = await prompt_service.score(
        request.prompt,
        project=await _load_project(project_repo, request.project_id),
        asset_type=request.asset_type,
        credentials=request.ai_credentials.to_domain() if request.ai_credentials else None,
    )
    return PromptScoreDTO.model_validate(score)


@router.get("/prompts/templates", response_model=List[PromptTemplateDTO])
def list_prompt_templates(
    asset_type: Optional[AssetType] = None,
    category: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    """List prompt templates, optionally filtered."""
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    templates = prompt_service.get_templates(asset_type, category, tag_list)
    return [PromptTemplateDTO.model_validate(t) for t in templates]


@router.post("/prompts/templates", response_model=PromptTemplateDTO, status_code=201)
def create_prompt_template(
    request: PromptTemplateCreateRequest,
    prompt_service: PromptService = Depends(get_prompt_service),
):
    """Add a prompt template."""
    template = prompt_service.create_template(request.model_dump())
    return PromptTemplateDTO.model_validate(template)


@router.get("/prompts/history/{project_id}", response_model=List[PromptHistoryDTO])
def get_prompt_history(
    project_id: str,
    asset_id: Optional[str] = None,
    prompt_service: PromptService = Depends(get_prompt_service),
):
    """Prompt history of a project, newest first."""
    history = prompt_service.get_history(project_id, asset_id)
    return [PromptHistoryDTO.model_validate(h) for h in history]


@router.post("/prompts/history", response_model=PromptHistoryDTO, status_code=201)
def save_prompt_history(
    request: PromptHistoryCreateRequest,
    prompt_service: PromptService = Depends(get_prompt_service),
    project_repo: ProjectRepository = Depends(get_project_repo),
):
    """Record a prompt in a project's history."""
    if not project_repo.exists(request.project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    history = prompt_service.save_history(
        request.project_id,
        request.original_prompt,
        enhanced_prompt=request.enhanced_prompt,
        asset_id=request.asset_id,
        metadata=request.metadata,
        parent_id=request.parent_id,
    )
    return PromptHistoryDTO.model_validate(history)
