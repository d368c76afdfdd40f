"""Projects router: listing, build/run lifecycle and file access."""

from fastapi import APIRouter, Depends
import structlog

from ..dependencies import bind_log_context, get_orchestrator, get_projects
from ..models import Project
from ..orchestrator import ProjectOrchestrator
from ..project_store import ProjectStore
from ..schemas import (
    ErrorResponse,
    FileContent,
    FileUpdate,
    ProjectActionResponse,
    ProjectOutput,
    ProjectsResponse,
    RunResponse,
    SuccessResponse,
)

logger = structlog.get_logger()

router = APIRouter(
    prefix="/projects",
    tags=["projects"],
    dependencies=[Depends(bind_log_context)],
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.get("", response_model=list[Project])
async def list_projects(projects: ProjectStore = Depends(get_projects)) -> list[Project]:
    """List projects, most recently created first."""
    return projects.list_projects()


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, projects: ProjectStore = Depends(get_projects)) -> Project:
    return projects.get(project_id)


@router.post("/{project_id}/build", response_model=ProjectActionResponse)
async def build_project(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
    projects: ProjectStore = Depends(get_projects),
) -> ProjectActionResponse:
    """Install the project's dependencies."""
    result = await orchestrator.build(project_id)
    return ProjectActionResponse(
        success=result.success,
        output=result.output,
        projects=projects.list_projects(),
    )


@router.post("/{project_id}/run", response_model=RunResponse)
async def run_project(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
    projects: ProjectStore = Depends(get_projects),
) -> RunResponse:
    result = await orchestrator.run(project_id)
    return RunResponse(output=result.output, port=result.port, projects=projects.list_projects())


@router.post("/{project_id}/stop", response_model=ProjectActionResponse)
async def stop_project(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
    projects: ProjectStore = Depends(get_projects),
) -> ProjectActionResponse:
    output = await orchestrator.stop(project_id)
    return ProjectActionResponse(output=output, projects=projects.list_projects())


@router.post("/{project_id}/restart", response_model=RunResponse)
async def restart_project(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
    projects: ProjectStore = Depends(get_projects),
) -> RunResponse:
    result = await orchestrator.restart(project_id)
    return RunResponse(output=result.output, port=result.port, projects=projects.list_projects())


@router.get("/{project_id}/output", response_model=ProjectOutput)
async def get_project_output(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
) -> ProjectOutput:
    """Captured process output, polled by the UI while a project runs."""
    project = orchestrator.output(project_id)
    return ProjectOutput(
        output=project.last_output or "",
        status=project.status,
        port=project.port,
    )


@router.get("/{project_id}/files/{file_path:path}", response_model=FileContent)
async def get_file(
    project_id: str,
    file_path: str,
    projects: ProjectStore = Depends(get_projects),
) -> FileContent:
    content = await projects.get_file(project_id, file_path)
    return FileContent(content=content)


@router.put("/{project_id}/files/{file_path:path}", response_model=SuccessResponse)
async def update_file(
    project_id: str,
    file_path: str,
    body: FileUpdate,
    projects: ProjectStore = Depends(get_projects),
) -> SuccessResponse:
    await projects.update_file(project_id, file_path, body.content)
    return SuccessResponse()


@router.delete("/{project_id}", response_model=ProjectsResponse)
async def delete_project(
    project_id: str,
    orchestrator: ProjectOrchestrator = Depends(get_orchestrator),
    projects: ProjectStore = Depends(get_projects),
) -> ProjectsResponse:
    """Remove the project and stop its process."""
    await orchestrator.delete(project_id)
    logger.info("project_delete_requested", project_id=project_id)
    return ProjectsResponse(projects=projects.list_projects())
