"""API routes for planner data."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from study_planner.backup.codec import backup_filename, dumps_snapshot
from study_planner.planner.models import Habit, Task
from study_planner.planner.service import StudyPlanner
from study_planner.planner.tasks import filter_tasks

router = APIRouter(tags=["api"])


def get_planner(request: Request) -> StudyPlanner:
    """The planner attached to the running app."""
    return request.app.state.planner


class TaskCreate(BaseModel):
    """New task payload."""
    title: str
    description: str = ""
    deadline: str | None = None
    dueDate: str | None = None
    priority: str = "medium"
    category: str = ""
    status: str = "pending"


class HabitCreate(BaseModel):
    """New habit payload."""
    name: str


class TaskResponse(BaseModel):
    """Task as stored."""
    id: str
    title: str
    description: str
    deadline: str | None
    priority: str
    category: str
    status: str
    createdAt: str


class HabitResponse(BaseModel):
    """Habit as stored."""
    id: str
    name: str
    streak: int
    completedToday: bool
    totalCompletions: int
    lastCompleted: str | None
    createdAt: str


class HabitSummaryResponse(BaseModel):
    """Habit figures for the dashboard."""
    total: int
    completed_today: int
    completion_rate: float
    longest_streak: int
    average_streak: float


class OverviewResponse(BaseModel):
    """Dashboard overview."""
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    high_priority_tasks: int
    completion_rate: float
    todays_tasks: list[TaskResponse]
    upcoming: list[TaskResponse]
    habits: HabitSummaryResponse
    timer_stats: dict[str, int]


class ImportResponse(BaseModel):
    """Result of restoring a backup."""
    tasks: int
    habits: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage_size_mb: float
    total_tasks: int
    total_habits: int


def _task(task: Task) -> TaskResponse:
    return TaskResponse(**task.to_dict())


def _habit(habit: Habit) -> HabitResponse:
    return HabitResponse(**habit.to_dict())


@router.get("/health", response_model=HealthResponse)
def health_check(planner: StudyPlanner = Depends(get_planner)) -> HealthResponse:
    """API health check."""
    get_size_mb = getattr(planner.store.medium, "get_size_mb", None)
    document = planner.store.load()
    return HealthResponse(
        status="healthy",
        storage_size_mb=round(get_size_mb(), 3) if get_size_mb else 0.0,
        total_tasks=len(document.tasks),
        total_habits=len(document.habits),
    )


# ==================== Tasks ====================

@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    search: str = Query("", description="Case-insensitive text in title or description"),
    priority: str = Query("all"),
    status: str = Query("all"),
    planner: StudyPlanner = Depends(get_planner),
) -> list[TaskResponse]:
    """List tasks, optionally filtered."""
    tasks = filter_tasks(planner.list_tasks(), search=search, priority=priority, status=status)
    return [_task(t) for t in tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(payload: TaskCreate, planner: StudyPlanner = Depends(get_planner)) -> TaskResponse:
    """Create a task."""
    task = planner.add_task(
        payload.title,
        description=payload.description,
        deadline=payload.deadline or payload.dueDate,
        priority=payload.priority,
        category=payload.category,
        status=payload.status,
    )
    return _task(task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    fields: dict[str, Any] = Body(...),
    planner: StudyPlanner = Depends(get_planner),
) -> TaskResponse:
    """Merge fields into a task."""
    task = planner.update_task(task_id, **fields)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return _task(task)


@router.post("/tasks/{task_id}/cycle", response_model=TaskResponse)
def cycle_task(task_id: str, planner: StudyPlanner = Depends(get_planner)) -> TaskResponse:
    """Advance a task to its next status."""
    task = planner.cycle_task_status(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return _task(task)


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, planner: StudyPlanner = Depends(get_planner)) -> Response:
    """Delete a task; unknown IDs are ignored."""
    planner.delete_task(task_id)
    return Response(status_code=204)


# ==================== Habits ====================

@router.get("/habits", response_model=list[HabitResponse])
def list_habits(planner: StudyPlanner = Depends(get_planner)) -> list[HabitResponse]:
    """List habits."""
    return [_habit(h) for h in planner.list_habits()]


@router.post("/habits", response_model=HabitResponse, status_code=201)
def create_habit(payload: HabitCreate, planner: StudyPlanner = Depends(get_planner)) -> HabitResponse:
    """Create a habit."""
    return _habit(planner.add_habit(payload.name))


@router.post("/habits/{habit_id}/toggle", response_model=HabitResponse)
def toggle_habit(habit_id: str, planner: StudyPlanner = Depends(get_planner)) -> HabitResponse:
    """Mark a habit done or not done for today."""
    habit = planner.toggle_habit(habit_id)
    if habit is None:
        raise HTTPException(status_code=404, detail=f"Habit {habit_id} not found")
    return _habit(habit)


@router.delete("/habits/{habit_id}", status_code=204)
def delete_habit(habit_id: str, planner: StudyPlanner = Depends(get_planner)) -> Response:
    """Delete a habit; unknown IDs are ignored."""
    planner.delete_habit(habit_id)
    return Response(status_code=204)


# ==================== Settings ====================

@router.get("/timer/settings")
def get_timer_settings(planner: StudyPlanner = Depends(get_planner)) -> dict[str, int]:
    return planner.get_timer_settings().to_dict()


@router.put("/timer/settings")
def update_timer_settings(
    updates: dict[str, Any] = Body(...),
    planner: StudyPlanner = Depends(get_planner),
) -> dict[str, int]:
    return planner.update_timer_settings(**updates).to_dict()


@router.get("/timer/stats")
def get_timer_stats(planner: StudyPlanner = Depends(get_planner)) -> dict[str, int]:
    return planner.get_timer_stats().to_dict()


@router.put("/timer/stats")
def update_timer_stats(
    updates: dict[str, Any] = Body(...),
    planner: StudyPlanner = Depends(get_planner),
) -> dict[str, int]:
    return planner.update_timer_stats(**updates).to_dict()


@router.get("/settings")
def get_settings(planner: StudyPlanner = Depends(get_planner)) -> dict[str, bool]:
    return planner.get_settings().to_dict()


@router.put("/settings")
def update_settings(
    updates: dict[str, Any] = Body(...),
    planner: StudyPlanner = Depends(get_planner),
) -> dict[str, bool]:
    return planner.update_settings(**updates).to_dict()


# ==================== Backup ====================

@router.get("/export")
def export_data(planner: StudyPlanner = Depends(get_planner)) -> Response:
    """Download the whole document as a backup file."""
    snapshot = planner.export_snapshot()
    filename = backup_filename(planner.clock().date())
    return Response(
        content=dumps_snapshot(snapshot),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_data(request: Request, planner: StudyPlanner = Depends(get_planner)) -> ImportResponse:
    """Replace all data with the backup in the request body."""
    raw = await request.body()
    document = await run_in_threadpool(planner.restore, raw)
    return ImportResponse(tasks=len(document.tasks), habits=len(document.habits))


@router.post("/clear", status_code=204)
def clear_data(planner: StudyPlanner = Depends(get_planner)) -> Response:
    """Erase all data."""
    planner.clear_all_data()
    return Response(status_code=204)


# ==================== Dashboard ====================

@router.get("/overview", response_model=OverviewResponse)
def get_overview(planner: StudyPlanner = Depends(get_planner)) -> OverviewResponse:
    """Dashboard figures for today."""
    overview = planner.overview()
    summary = overview.habits
    return OverviewResponse(
        total_tasks=overview.total_tasks,
        completed_tasks=overview.completed_tasks,
        in_progress_tasks=overview.in_progress_tasks,
        high_priority_tasks=overview.high_priority_tasks,
        completion_rate=round(overview.completion_rate, 1),
        todays_tasks=[_task(t) for t in overview.todays_tasks],
        upcoming=[_task(t) for t in overview.upcoming],
        habits=HabitSummaryResponse(
            total=summary.total,
            completed_today=summary.completed_today,
            completion_rate=round(summary.completion_rate, 1),
            longest_streak=summary.longest_streak,
            average_streak=round(summary.average_streak, 1),
        ),
        timer_stats=overview.timer_stats.to_dict(),
    )
