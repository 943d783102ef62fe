from abc import ABC, abstractmethod
from dataclasses import dataclass

from schemaboard.domain.entities import DiagramEntity

CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class DesignLocation:
    path: str
    content_type: str = CONTENT_TYPE


def design_path(project_id: str) -> str:
    """Deterministic object path of a project's design document."""
    return f"design/{project_id}/{project_id}-design.json"


class DesignStorage(ABC):
    """
    Abstract interface for durable design storage. Supports both S3 and local filesystem.
    """

    @abstractmethod
    async def create_empty_design(self, project_id: str) -> DesignLocation:
        """
        Write an empty diagram for a new project.

        Args:
            project_id: Project the design belongs to

        Returns:
            Location of the written design

        Raises:
            StorageError: if the write fails
        """
        pass

    @abstractmethod
    async def get_design(self, path: str) -> DiagramEntity:
        """
        Read a design document.

        Args:
            path: Design path as returned by design_path()

        Returns:
            The stored diagram

        Raises:
            NotFoundError: if nothing is stored at the path
        """
        pass

    @abstractmethod
    async def update_design(self, diagram: DiagramEntity, path: str) -> DesignLocation:
        """
        Overwrite a design document.

        Raises:
            StorageError: if the write fails
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass
