"""Generation job repository - single index file implementation."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List, Any

from assetstudio.models.domain import GenerationJob, JobStatus
from assetstudio.models.validation import validate_job
from assetstudio.repositories.base import Repository
from assetstudio.repositories.document_store import JOBS_INDEX

logger = logging.getLogger(__name__)

JOB_FIELDS = ("status", "progress", "error_message", "completed_at")


class JobRepository(Repository[GenerationJob]):
    """
    Repository for generation job data.

    Current implementation: one global index (jobs/generation-jobs.json)
    Rationale: jobs are small and project-agnostic; no per-job files needed
    Order of the index is creation order, so the last job for an asset is
    its current one.
    """

    index_path = JOBS_INDEX

    def get(self, id: str) -> Optional[GenerationJob]:
        """Get job by ID."""
        for entry in self._read_index(self.index_path):
            if entry.get("id") == id:
                return GenerationJob.from_dict(entry)
        return None

    def list(self) -> List[GenerationJob]:
        """List all jobs in creation order."""
        return [GenerationJob.from_dict(entry) for entry in self._read_index(self.index_path)]

    def list_by_asset(self, asset_id: str) -> List[GenerationJob]:
        """Jobs for one asset, oldest first."""
        return [job for job in self.list() if job.asset_id == asset_id]

    def list_by_status(self, status: JobStatus) -> List[GenerationJob]:
        return [job for job in self.list() if job.status == status]

    def get_active_jobs(self) -> List[GenerationJob]:
        """Get all queued or processing jobs."""
        return [
            job for job in self.list()
            if job.status in (JobStatus.QUEUED, JobStatus.PROCESSING)
        ]

    def create(self, data: Dict[str, Any]) -> GenerationJob:
        """Create a job; status defaults to queued with zero progress."""
        document = {
            "id": self.store.generate_id(),
            "asset_id": data.get("asset_id"),
            "status": _plain(data.get("status", JobStatus.QUEUED)),
            "progress": data.get("progress", 0),
            "error_message": data.get("error_message"),
            "created_at": self.store.get_current_timestamp(),
            "completed_at": None,
        }
        validate_job(document)

        self._upsert_index(self.index_path, document)
        return GenerationJob.from_dict(document)

    def update(self, id: str, changes: Dict[str, Any]) -> Optional[GenerationJob]:
        """
        Update a job. id, asset_id and created_at never change.

        completed_at is stamped the first time the job enters completed or
        failed and never overwritten afterwards.
        """
        return self._update(id, changes, require_active=False)

    def update_active(self, id: str, changes: Dict[str, Any]) -> Optional[GenerationJob]:
        """Update a job only while it is queued or processing.

        Returns None if the job is absent or already terminal. The check and
        the write happen under the index lock, so a concurrent cancel cannot
        be overwritten.
        """
        return self._update(id, changes, require_active=True)

    def _update(
        self,
        id: str,
        changes: Dict[str, Any],
        require_active: bool,
    ) -> Optional[GenerationJob]:
        with self.store.lock(self.index_path):
            existing = self.get(id)
            if not existing:
                return None
            if require_active and existing.status.is_terminal:
                return None

            document = existing.to_dict()
            for key in JOB_FIELDS:
                if key in changes:
                    document[key] = _plain(changes[key])

            document["id"] = existing.id
            document["asset_id"] = existing.asset_id
            document["created_at"] = existing.created_at
            document["completed_at"] = existing.completed_at or document.get("completed_at")

            if document["status"] in (JobStatus.COMPLETED.value, JobStatus.FAILED.value) \
                    and not document["completed_at"]:
                document["completed_at"] = self.store.get_current_timestamp()

            validate_job(document)
            self._upsert_index(self.index_path, document)

        return GenerationJob.from_dict(document)

    def delete(self, id: str) -> bool:
        """Delete job from the index."""
        with self.store.lock(self.index_path):
            if not self.get(id):
                return False
            self._remove_from_index(self.index_path, id)
        return True

    def cleanup_old_jobs(self, days_old: int = 30) -> int:
        """
        Drop terminal jobs that finished more than days_old days ago.

        Active jobs are always kept. Returns the number of jobs removed.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)

        with self.store.lock(self.index_path):
            entries = self._read_index(self.index_path)
            kept = []
            for entry in entries:
                job = GenerationJob.from_dict(entry)
                if not job.status.is_terminal:
                    kept.append(entry)
                    continue
                finished = _parse_timestamp(job.completed_at or job.created_at)
                if finished > cutoff:
                    kept.append(entry)

            removed = len(entries) - len(kept)
            if removed:
                self.store.write_json(self.index_path, kept)

        if removed:
            logger.info("Cleaned up %d old generation jobs", removed)
        return removed


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, JobStatus) else value


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
