"""
Export router.

Endpoints:
- GET /projects/{project_id}/documents/{document_id} - Export annotation document
- POST /projects/{project_id} - Start project export task
- GET /tasks/{task_id} - Export task status
- GET /tasks/{task_id}/download - Download finished export
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel

from webanno.db import User
from webanno.errors import WebAnnoError
from webanno.routers.auth import get_current_user
from webanno.routers.dependencies import get_project_or_404, get_services, to_http_exception
from webanno.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


class ExportTaskResponse(BaseModel):
    task_id: str
    project_id: int
    status: str


@router.get("/projects/{project_id}/documents/{document_id}")
async def export_document(
    project_id: int,
    document_id: int,
    format: str = Query("json"),
    annotator: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Export an annotation document as JSON or TSV."""
    project = get_project_or_404(services, project_id)
    try:
        document = services.documents.get_source_document(project.id, document_id)
        content, media_type, file_name = services.export.export_annotation_document(
            project, document, user, format=format, annotator=annotator
        )
    except WebAnnoError as e:
        raise to_http_exception(e)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.post("/projects/{project_id}", response_model=ExportTaskResponse, status_code=202)
async def start_project_export(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Queue a project export (Celery)."""
    project = get_project_or_404(services, project_id)
    try:
        services.export.check_export_allowed(project, user)
    except WebAnnoError as e:
        raise to_http_exception(e)
    if not services.projects.is_admin(project, user):
        raise HTTPException(status_code=403, detail=f"You have no permission to export project [{project_id}]")

    from webanno.tasks.export_tasks import export_project_task

    task = export_project_task.delay(project.id)
    logger.info(f"Queued export of project {project.id}: task {task.id}")
    return ExportTaskResponse(task_id=task.id, project_id=project.id, status="PENDING")


@router.get("/tasks/{task_id}")
async def get_export_task(
    task_id: str,
    user: User = Depends(get_current_user),
):
    from webanno.celery_app import celery_app

    result = celery_app.AsyncResult(task_id)
    response = {"task_id": task_id, "status": result.status}
    if result.successful():
        response["result"] = {k: v for k, v in result.result.items() if k != "archive"}
    elif result.failed():
        response["error"] = str(result.result)
    return response


@router.get("/tasks/{task_id}/download")
async def download_export(
    task_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    from webanno.celery_app import celery_app

    result = celery_app.AsyncResult(task_id)
    if not result.successful():
        raise HTTPException(status_code=409, detail=f"Export task [{task_id}] is not finished")

    project = get_project_or_404(services, result.result["project_id"])
    if not services.projects.is_admin(project, user):
        raise HTTPException(status_code=403, detail=f"You have no permission to export project [{project.id}]")

    archive = Path(result.result["archive"])
    if not archive.exists():
        raise HTTPException(status_code=404, detail=f"Export archive of task [{task_id}] no longer exists")
    return FileResponse(archive, filename=archive.name, media_type="application/zip")
