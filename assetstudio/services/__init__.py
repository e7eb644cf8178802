"""
Service layer for business logic.

Projects and assets (project_service), generation jobs
(generation_service) and prompt tooling (prompt_service) sit between the
API routes and the repositories.
"""
