"""Design bootstrap and read access for the HTTP surface."""
from __future__ import annotations

import logging

from schemaboard.domain.entities import DiagramEntity
from schemaboard.domain.errors import ConflictError, ValidationError
from schemaboard.realtime.engine import DiagramSyncEngine
from schemaboard.storage.interface import DesignLocation, DesignStorage, design_path

logger = logging.getLogger(__name__)


class DesignService:
    """Creates the initial empty design of a project and serves its current state."""

    def __init__(self, storage: DesignStorage, engine: DiagramSyncEngine) -> None:
        self._storage = storage
        self._engine = engine

    @staticmethod
    def _require_project_id(project_id: str) -> str:
        project_id = (project_id or "").strip()
        if not project_id or "/" in project_id:
            raise ValidationError("Invalid project id")
        return project_id

    async def bootstrap(self, project_id: str) -> DesignLocation:
        """Write the empty design for a new project.

        Raises:
            ConflictError: a design already exists for the project
            StorageError: the durable store refused the write
        """
        project_id = self._require_project_id(project_id)
        if await self._storage.exists(design_path(project_id)):
            raise ConflictError(f"Design already exists for project: {project_id}")
        location = await self._storage.create_empty_design(project_id)
        logger.info(f"Created empty design for project {project_id} at {location.path}")
        return location

    async def current_diagram(self, project_id: str) -> DiagramEntity:
        """Same view a joining editor receives: cache first, then storage."""
        return await self._engine.hydrate(self._require_project_id(project_id))
