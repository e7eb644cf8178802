"""Prompt audit trail repository - history, templates and breakdowns."""

import logging
from typing import Optional, List, Dict, Any

from assetstudio.models.domain import (
    AssetType,
    PromptBreakdown,
    PromptHistory,
    PromptTemplate,
)
from assetstudio.repositories.base import Repository
from assetstudio.repositories.document_store import DocumentStore

logger = logging.getLogger(__name__)

HISTORY_PATH = "prompts/history.json"
TEMPLATES_PATH = "prompts/templates.json"
BREAKDOWNS_PATH = "prompts/breakdowns.json"


class PromptRepository(Repository[PromptHistory]):
    """
    Repository for prompt history, templates and breakdowns.

    History versions are per scope: (project, asset) or (project, no asset).
    Each scope counts 1, 2, 3... independently of every other scope.
    """

    def __init__(
        self,
        store: DocumentStore,
        default_templates: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(store)
        self.default_templates = default_templates or []

    def initialize(self):
        """Create prompt files if absent; seed templates. Idempotent."""
        self.store.ensure_directory("prompts")

        if not self.store.file_exists(HISTORY_PATH):
            self.store.write_json(HISTORY_PATH, [])
        if not self.store.file_exists(BREAKDOWNS_PATH):
            self.store.write_json(BREAKDOWNS_PATH, [])
        if not self.store.file_exists(TEMPLATES_PATH):
            self.store.write_json(
                TEMPLATES_PATH,
                [self._new_template(t).to_dict() for t in self.default_templates],
            )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get(self, id: str) -> Optional[PromptHistory]:
        for entry in self._read_index(HISTORY_PATH):
            if entry.get("id") == id:
                return PromptHistory.from_dict(entry)
        return None

    def create(self, data: Dict[str, Any]) -> PromptHistory:
        """Append a history record with the next version in its scope."""
        project_id = data["project_id"]
        asset_id = data.get("asset_id")

        with self.store.lock(HISTORY_PATH):
            entries = self._read_index(HISTORY_PATH)
            versions = [
                e.get("version", 0) for e in entries
                if e.get("project_id") == project_id and e.get("asset_id") == asset_id
            ]

            record = PromptHistory(
                id=self.store.generate_id(),
                project_id=project_id,
                asset_id=asset_id,
                original_prompt=data["original_prompt"],
                enhanced_prompt=data.get("enhanced_prompt"),
                version=max(versions, default=0) + 1,
                parent_id=data.get("parent_id"),
                metadata=dict(data.get("metadata") or {}),
                created_at=self.store.get_current_timestamp(),
            )
            entries.append(record.to_dict())
            self.store.write_json(HISTORY_PATH, entries)

        return record

    def update(self, id: str, changes: Dict[str, Any]) -> Optional[PromptHistory]:
        """History is append-only; only metadata (e.g. feedback, score) may change."""
        with self.store.lock(HISTORY_PATH):
            existing = self.get(id)
            if not existing:
                return None
            existing.metadata.update(changes.get("metadata") or {})
            self._upsert_index(HISTORY_PATH, existing.to_dict())
        return existing

    def delete(self, id: str) -> bool:
        with self.store.lock(HISTORY_PATH):
            if not self.get(id):
                return False
            self._remove_from_index(HISTORY_PATH, id)
        return True

    def list_history(self, project_id: str, asset_id: Optional[str] = None) -> List[PromptHistory]:
        """History for a project (optionally one asset), newest first."""
        records = [
            PromptHistory.from_dict(e) for e in self._read_index(HISTORY_PATH)
            if e.get("project_id") == project_id
            and (asset_id is None or e.get("asset_id") == asset_id)
        ]
        return sorted(records, key=lambda h: (h.created_at, h.version), reverse=True)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def list_templates(
        self,
        asset_type: Optional[AssetType] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> List[PromptTemplate]:
        templates = [PromptTemplate.from_dict(e) for e in self._read_index(TEMPLATES_PATH)]

        if asset_type:
            templates = [t for t in templates if t.asset_type == asset_type]
        if category:
            templates = [t for t in templates if t.category == category]
        if tags:
            templates = [t for t in templates if any(tag in t.tags for tag in tags)]

        return templates

    def create_template(self, data: Dict[str, Any]) -> PromptTemplate:
        template = self._new_template(data)
        self._upsert_index(TEMPLATES_PATH, template.to_dict())
        return template

    def _new_template(self, data: Dict[str, Any]) -> PromptTemplate:
        now = self.store.get_current_timestamp()
        return PromptTemplate(
            id=self.store.generate_id(),
            name=data["name"],
            description=data.get("description", ""),
            asset_type=AssetType(data["asset_type"]),
            category=data.get("category", ""),
            components=list(data.get("components", [])),
            example_prompt=data.get("example_prompt", ""),
            tags=list(data.get("tags", [])),
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # Breakdowns
    # ------------------------------------------------------------------

    def save_breakdown(self, breakdown: PromptBreakdown):
        with self.store.lock(BREAKDOWNS_PATH):
            entries = self._read_index(BREAKDOWNS_PATH)
            entries.append(breakdown.to_dict())
            self.store.write_json(BREAKDOWNS_PATH, entries)

    def list_breakdowns(self) -> List[Dict[str, Any]]:
        return self._read_index(BREAKDOWNS_PATH)
