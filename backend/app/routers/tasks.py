import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.schemas.error import ErrorResponse
from app.schemas.task import BlockRequest, TaskCreate, TaskResponse, TaskUpdate
from app.services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    responses={
        400: {"model": ErrorResponse, "description": "Rejected by a validation or business rule"},
        404: {"model": ErrorResponse, "description": "Not found"},
    },
)

def get_task_service(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)

@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    request: Request,
    response: Response,
    service: TaskService = Depends(get_task_service),
):
    logger.info("POST /api/tasks - Creating task: title=%s", task_in.title)
    task = await service.create_task(task_in)
    response.headers["Location"] = str(request.url_for("get_task", task_id=task.id))
    return TaskResponse.from_task(task)

@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, service: TaskService = Depends(get_task_service)):
    task = await service.get_task_by_id(task_id)
    return TaskResponse.from_task(task)

@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    service: TaskService = Depends(get_task_service),
):
    logger.info("PUT /api/tasks/%s - Updating task", task_id)
    task = await service.update_task(task_id, task_in)
    return TaskResponse.from_task(task)

@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    await service.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(task_id: int, service: TaskService = Depends(get_task_service)):
    return TaskResponse.from_task(await service.start_task(task_id))

@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(task_id: int, service: TaskService = Depends(get_task_service)):
    return TaskResponse.from_task(await service.complete_task(task_id))

@router.post("/{task_id}/block", response_model=TaskResponse)
async def block_task(
    task_id: int,
    body: BlockRequest,
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_task(await service.block_task(task_id, body.reason))

@router.post("/{task_id}/cancel", response_model=TaskResponse)
async def cancel_task(task_id: int, service: TaskService = Depends(get_task_service)):
    return TaskResponse.from_task(await service.cancel_task(task_id))
