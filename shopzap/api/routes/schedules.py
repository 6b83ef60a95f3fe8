"""Scheduled monitoring task endpoints."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from shopzap.api.deps import get_context, require_api_key
from shopzap.context import MonitorContext
from shopzap.errors import InvalidInputError, PersistenceError, TaskNotFoundError
from shopzap.ingest.adapters import get_adapter
from shopzap.models import MonitoringTask

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedules"], dependencies=[Depends(require_api_key)])


class ScheduleRequest(BaseModel):
    url: Optional[str] = None
    selector: Optional[str] = None
    frequency: Optional[str] = None


class ScheduleResponse(BaseModel):
    id: str
    url: str
    selector: Optional[str]
    frequency: str
    active: bool


@router.post("/schedule", status_code=201)
async def create_schedule(payload: ScheduleRequest, context: MonitorContext = Depends(get_context)):
    """Register a recurring extraction of a URL on a cron schedule."""
    if not payload.url or not payload.frequency:
        raise HTTPException(status_code=400, detail="URL and frequency are required.")

    task = MonitoringTask(
        task_id=uuid4().hex,
        url=payload.url.strip(),
        selector=payload.selector,
        schedule=payload.frequency.strip(),
    )
    try:
        # A generic-site task without selector would fail on every fire
        get_adapter(task.url, task.selector)
        await context.scheduler.add_task(task)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Task {task.task_id} scheduled but not saved: {e}")
        raise HTTPException(status_code=500, detail=f"Task scheduled but could not be saved. {e}")

    return {"message": "Task scheduled successfully", "taskId": task.task_id}


@router.get("/schedules", response_model=list[ScheduleResponse])
async def list_schedules(context: MonitorContext = Depends(get_context)):
    """List all scheduled tasks."""
    return [
        ScheduleResponse(**task.to_dict(), active=context.scheduler.is_active(task.task_id))
        for task in context.scheduler.list_tasks()
    ]


@router.delete("/schedule/{task_id}")
async def delete_schedule(task_id: str, context: MonitorContext = Depends(get_context)):
    """Stop and remove a scheduled task."""
    try:
        await context.scheduler.cancel(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Scheduled task not found.")
    except PersistenceError as e:
        logger.error(f"Task {task_id} stopped but removal not saved: {e}")
        raise HTTPException(status_code=500, detail=f"Task stopped but could not be removed from storage. {e}")

    return {"message": "Task unscheduled successfully", "taskId": task_id}
