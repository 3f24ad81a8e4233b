"""Task endpoints — lanes, completion, subtasks, focus sessions.

GET    /api/v1/tasks?lane=           — caller's tasks (open tasks of one lane when ?lane= is set)
POST   /api/v1/tasks                 — create
POST   /api/v1/tasks/bulk            — create from extracted [{title}] candidates
GET    /api/v1/tasks/{id}            — single task with subtasks and notes
PUT    /api/v1/tasks/{id}            — edit title, notes, lane, due_date, reminder_type, completed
POST   /api/v1/tasks/{id}/move       — change lane
POST   /api/v1/tasks/{id}/complete   — complete (idempotent)
DELETE /api/v1/tasks/{id}            — delete with subtasks and notes
POST   /api/v1/tasks/{id}/subtasks   — add subtask
PUT    /api/v1/subtasks/{id}         — rename / toggle
DELETE /api/v1/subtasks/{id}
POST   /api/v1/focus-sessions        — log focused minutes
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.api.v1.stats import StatsResponse, stats_to_response
from app.db.database import get_session
from app.engines.lanes import tasks_by_lane, validate_lane
from app.middleware.auth import current_user_id
from app.models.task import DelegationNote, Subtask, Task
from app.store.tasks import TaskStore

router = APIRouter(prefix="/api/v1", tags=["tasks"])


# === Request / Response Models ===


class CreateTaskRequest(BaseModel):
    title: str = Field(max_length=2000)
    notes: str | None = Field(default=None, max_length=10000)
    lane: str | None = None
    due_date: datetime | None = None  # default: derived from the lane
    reminder_type: str | None = None


class BulkCreateRequest(BaseModel):
    """Extraction output: candidates without a usable title are dropped."""

    tasks: list[Any] = Field(default_factory=list, max_length=200)
    lane: str | None = None


class UpdateTaskRequest(BaseModel):
    """All fields optional; only fields present in the body are applied."""

    title: str | None = Field(default=None, max_length=2000)
    notes: str | None = Field(default=None, max_length=10000)
    lane: str | None = None
    due_date: datetime | None = None
    reminder_type: str | None = None
    completed: bool | None = None


class MoveTaskRequest(BaseModel):
    lane: str


class CreateSubtaskRequest(BaseModel):
    title: str = Field(max_length=2000)


class UpdateSubtaskRequest(BaseModel):
    title: str | None = Field(default=None, max_length=2000)
    completed: bool | None = None


class FocusSessionRequest(BaseModel):
    minutes: int = Field(gt=0, le=24 * 60)
    task_id: str | None = None


class SubtaskResponse(BaseModel):
    id: str
    task_id: str
    title: str
    completed: bool
    created_at: datetime


class NoteResponse(BaseModel):
    id: str
    task_id: str
    author_id: str | None = None
    type: str
    text: str | None = None
    created_at: datetime


class TaskResponse(BaseModel):
    id: str
    title: str
    notes: str | None = None
    lane: str
    due_date: datetime | None = None
    reminder_type: str
    focus_time_minutes: int
    created_at: datetime
    completed_at: datetime | None = None
    is_completed: bool
    assigned_contact_id: str | None = None
    delegated_to_user_id: str | None = None
    delegation_status: str | None = None
    delegated_at: datetime | None = None
    last_delegation_update: datetime | None = None
    subtasks: list[SubtaskResponse] = Field(default_factory=list)
    delegation_notes: list[NoteResponse] = Field(default_factory=list)


class CompletionResponse(BaseModel):
    task: TaskResponse
    points_awarded: bool
    stats: StatsResponse | None = None


class FocusSessionResponse(BaseModel):
    id: str
    task_id: str | None = None
    minutes: int
    created_at: datetime


def subtask_to_response(st: Subtask) -> SubtaskResponse:
    return SubtaskResponse(
        id=st.id,
        task_id=st.task_id,
        title=st.title,
        completed=st.completed,
        created_at=st.created_at,
    )


def note_to_response(note: DelegationNote) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        task_id=note.task_id,
        author_id=note.author_id,
        type=note.type,
        text=note.text,
        created_at=note.created_at,
    )


def task_to_response(
    task: Task,
    subtasks: list[Subtask] | None = None,
    notes: list[DelegationNote] | None = None,
) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        notes=task.notes,
        lane=task.lane,
        due_date=task.due_date,
        reminder_type=task.reminder_type,
        focus_time_minutes=task.focus_time_minutes,
        created_at=task.created_at,
        completed_at=task.completed_at,
        is_completed=task.is_completed,
        assigned_contact_id=task.assigned_contact_id,
        delegated_to_user_id=task.delegated_to_user_id,
        delegation_status=task.delegation_status,
        delegated_at=task.delegated_at,
        last_delegation_update=task.last_delegation_update,
        subtasks=[subtask_to_response(st) for st in subtasks or []],
        delegation_notes=[note_to_response(n) for n in notes or []],
    )


def tasks_with_children(store: TaskStore, tasks: list[Task]) -> list[TaskResponse]:
    ids = [t.id for t in tasks]
    subtasks = store.subtasks_by_task(ids)
    notes = store.notes_by_task(ids)
    return [task_to_response(t, subtasks.get(t.id, []), notes.get(t.id, [])) for t in tasks]


def single_task_response(store: TaskStore, task: Task) -> TaskResponse:
    return tasks_with_children(store, [task])[0]


# === Tasks ===


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    lane: str | None = Query(default=None),
    include_completed: bool = Query(default=True),
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> list[TaskResponse]:
    """List the caller's tasks. With ?lane=, only open tasks of that lane, oldest first."""
    store = TaskStore(session)
    if lane is not None:
        validate_lane(lane)
        tasks = tasks_by_lane(store.list_tasks(user_id, include_completed=False), lane)
    else:
        tasks = store.list_tasks(user_id, include_completed=include_completed)
    return tasks_with_children(store, tasks)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(
    req: CreateTaskRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    task = TaskStore(session).create_task(
        user_id,
        req.title,
        notes=req.notes,
        lane=req.lane,
        due_date=req.due_date,
        reminder_type=req.reminder_type,
    )
    return task_to_response(task)


@router.post("/tasks/bulk", response_model=list[TaskResponse], status_code=201)
def create_tasks_bulk(
    req: BulkCreateRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> list[TaskResponse]:
    tasks = TaskStore(session).create_tasks_from_titles(user_id, req.tasks, lane=req.lane)
    return [task_to_response(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> TaskResponse:
    store = TaskStore(session)
    return single_task_response(store, store.get_owned_task(task_id, user_id))


@router.put("/tasks/{task_id}", response_model=CompletionResponse)
def update_task(
    task_id: str,
    req: UpdateTaskRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> CompletionResponse:
    store = TaskStore(session)
    result = store.update_task(task_id, user_id, req.model_dump(exclude_unset=True))
    return CompletionResponse(
        task=single_task_response(store, result.task),
        points_awarded=result.awarded,
        stats=stats_to_response(result.stats) if result.stats is not None else None,
    )


@router.post("/tasks/{task_id}/move", response_model=TaskResponse)
def move_task(
    task_id: str,
    req: MoveTaskRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    store = TaskStore(session)
    return single_task_response(store, store.move_task(task_id, user_id, req.lane))


@router.post("/tasks/{task_id}/complete", response_model=CompletionResponse)
def complete_task(
    task_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> CompletionResponse:
    """Complete the task. Completing an already-completed task awards nothing."""
    store = TaskStore(session)
    result = store.complete_task(task_id, user_id)
    return CompletionResponse(
        task=single_task_response(store, result.task),
        points_awarded=result.awarded,
        stats=stats_to_response(result.stats) if result.stats is not None else None,
    )


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> None:
    TaskStore(session).delete_task(task_id, user_id)


# === Subtasks ===


@router.post("/tasks/{task_id}/subtasks", response_model=SubtaskResponse, status_code=201)
def add_subtask(
    task_id: str,
    req: CreateSubtaskRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> SubtaskResponse:
    return subtask_to_response(TaskStore(session).add_subtask(task_id, user_id, req.title))


@router.put("/subtasks/{subtask_id}", response_model=SubtaskResponse)
def update_subtask(
    subtask_id: str,
    req: UpdateSubtaskRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> SubtaskResponse:
    subtask = TaskStore(session).update_subtask(subtask_id, user_id, title=req.title, completed=req.completed)
    return subtask_to_response(subtask)


@router.delete("/subtasks/{subtask_id}", status_code=204)
def delete_subtask(
    subtask_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> None:
    TaskStore(session).delete_subtask(subtask_id, user_id)


# === Focus sessions ===


@router.post("/focus-sessions", response_model=FocusSessionResponse, status_code=201)
def log_focus_session(
    req: FocusSessionRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> FocusSessionResponse:
    row = TaskStore(session).log_focus_session(user_id, req.minutes, task_id=req.task_id)
    return FocusSessionResponse(id=row.id, task_id=row.task_id, minutes=row.minutes, created_at=row.created_at)
