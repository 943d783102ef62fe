import asyncio
import json
import os
from typing import Optional

from schemaboard.domain.diagram import coerce_diagram
from schemaboard.domain.entities import DiagramEntity, empty_diagram
from schemaboard.domain.errors import NotFoundError, StorageError
from schemaboard.storage.interface import DesignLocation, DesignStorage, design_path


class FilesystemStorage(DesignStorage):
    """
    Implements design storage using the local filesystem.
    """

    def __init__(self, base_dir: Optional[str] = None):
        """
        Initialize filesystem storage.

        Args:
            base_dir: Base directory for storing designs.
                      If None, uses 'designs' in the current working directory.
        """
        if base_dir is None:
            base_dir = os.path.join(os.getcwd(), "designs")

        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)

    def _full_path(self, path: str) -> str:
        full = os.path.normpath(os.path.join(self.base_dir, path))
        if not full.startswith(os.path.normpath(self.base_dir) + os.sep):
            raise ValueError(f"Design path escapes storage root: {path}")
        return full

    def _write(self, diagram: DiagramEntity, path: str) -> DesignLocation:
        full = self._full_path(path)
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            # Write-then-rename so readers never see a partial document
            tmp = f"{full}.tmp"
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(diagram, f, indent=2)
            os.replace(tmp, full)
        except OSError as e:
            raise StorageError(f"Failed to write design at {path}: {e}") from e
        return DesignLocation(path=path)

    def _read(self, path: str) -> DiagramEntity:
        full = self._full_path(path)
        if not os.path.exists(full):
            raise NotFoundError(f"Design not found at path: {path}")
        with open(full, "r", encoding="utf-8") as f:
            return coerce_diagram(json.load(f))

    async def create_empty_design(self, project_id: str) -> DesignLocation:
        return await asyncio.to_thread(self._write, empty_diagram(), design_path(project_id))

    async def get_design(self, path: str) -> DiagramEntity:
        return await asyncio.to_thread(self._read, path)

    async def update_design(self, diagram: DiagramEntity, path: str) -> DesignLocation:
        return await asyncio.to_thread(self._write, diagram, path)

    async def exists(self, path: str) -> bool:
        return os.path.exists(self._full_path(path))
