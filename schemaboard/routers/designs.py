from fastapi import APIRouter, Depends

from schemaboard.application.design_service import DesignService
from schemaboard.dependencies import get_design_service
from schemaboard.schemas.api_schemas import DesignCreated, DiagramResponse, ErrorResponse

router = APIRouter()

@router.post(
    "/projects/{project_id}/design",
    response_model=DesignCreated,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def create_design(
    project_id: str,
    service: DesignService = Depends(get_design_service),
):
    """
    Write the empty design document of a newly created project.
    """
    location = await service.bootstrap(project_id)
    return DesignCreated(project_id=project_id, path=location.path, content_type=location.content_type)

@router.get("/projects/{project_id}/design", response_model=DiagramResponse)
async def get_design(
    project_id: str,
    service: DesignService = Depends(get_design_service),
):
    """
    Return the live diagram of a project (cached copy if any, else the stored one).
    """
    diagram = await service.current_diagram(project_id)
    return DiagramResponse(project_id=project_id, Nodes=diagram["Nodes"], Edges=diagram["Edges"])
