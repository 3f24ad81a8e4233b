"""Delegation endpoints.

Owner side:
POST   /api/v1/tasks/{id}/delegate/contact — assign to a local contact
POST   /api/v1/tasks/{id}/delegate/user    — delegate to a linked teammate
DELETE /api/v1/tasks/{id}/delegation       — revoke any delegation

Delegatee side:
PUT    /api/v1/tasks/{id}/delegation-status — report progress (optional note)
GET    /api/v1/delegated-to-me             — open tasks delegated to the caller

Both:
POST   /api/v1/tasks/{id}/notes            — append a comment
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.api.v1.tasks import (
    NoteResponse,
    SubtaskResponse,
    TaskResponse,
    note_to_response,
    single_task_response,
    subtask_to_response,
    task_to_response,
)
from app.db.database import get_session
from app.delegation.workflow import DelegationWorkflow
from app.middleware.auth import current_user_id

router = APIRouter(prefix="/api/v1", tags=["delegation"])


class DelegateToContactRequest(BaseModel):
    contact_id: str


class DelegateToUserRequest(BaseModel):
    teammate_id: str


class DelegationStatusRequest(BaseModel):
    status: str
    note: str | None = Field(default=None, max_length=4000)


class AddNoteRequest(BaseModel):
    text: str = Field(max_length=4000)


class DelegatedTaskResponse(BaseModel):
    task: TaskResponse
    owner_name: str
    subtasks: list[SubtaskResponse] = Field(default_factory=list)
    notes: list[NoteResponse] = Field(default_factory=list)


@router.post("/tasks/{task_id}/delegate/contact", response_model=TaskResponse)
def delegate_to_contact(
    task_id: str,
    req: DelegateToContactRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    flow = DelegationWorkflow(session)
    task = flow.delegate_task(task_id, user_id, req.contact_id)
    return single_task_response(flow.tasks, task)


@router.post("/tasks/{task_id}/delegate/user", response_model=TaskResponse)
def delegate_to_user(
    task_id: str,
    req: DelegateToUserRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    flow = DelegationWorkflow(session)
    task = flow.delegate_task_to_user(task_id, user_id, req.teammate_id)
    return single_task_response(flow.tasks, task)


@router.delete("/tasks/{task_id}/delegation", response_model=TaskResponse)
def clear_delegation(
    task_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    flow = DelegationWorkflow(session)
    return single_task_response(flow.tasks, flow.clear_delegation(task_id, user_id))


@router.put("/tasks/{task_id}/delegation-status", response_model=TaskResponse)
def update_delegation_status(
    task_id: str,
    req: DelegationStatusRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> TaskResponse:
    """Only the current delegatee may report status; anyone else gets 403."""
    flow = DelegationWorkflow(session)
    task = flow.update_delegation_status(task_id, user_id, req.status, note=req.note)
    return single_task_response(flow.tasks, task)


@router.post("/tasks/{task_id}/notes", response_model=NoteResponse, status_code=201)
def add_note(
    task_id: str,
    req: AddNoteRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> NoteResponse:
    return note_to_response(DelegationWorkflow(session).add_delegation_note(task_id, user_id, req.text))


@router.get("/delegated-to-me", response_model=list[DelegatedTaskResponse])
def delegated_to_me(
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> list[DelegatedTaskResponse]:
    return [
        DelegatedTaskResponse(
            task=task_to_response(d.task, d.subtasks, d.notes),
            owner_name=d.owner_name,
            subtasks=[subtask_to_response(st) for st in d.subtasks],
            notes=[note_to_response(n) for n in d.notes],
        )
        for d in DelegationWorkflow(session).delegated_to_me(user_id)
    ]
