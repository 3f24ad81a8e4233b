"""Local contact endpoints (delegation targets without an account).

GET    /api/v1/contacts
POST   /api/v1/contacts
DELETE /api/v1/contacts/{id} — also unassigns the contact from the caller's tasks
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.db.database import get_session
from app.middleware.auth import current_user_id
from app.models.team import Contact
from app.store.contacts import ContactStore

router = APIRouter(prefix="/api/v1", tags=["contacts"])


class CreateContactRequest(BaseModel):
    name: str = Field(max_length=255)
    role: str | None = Field(default=None, max_length=255)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class ContactResponse(BaseModel):
    id: str
    name: str
    role: str | None = None
    color: str
    created_at: datetime


class DeleteContactResponse(BaseModel):
    deleted: str
    tasks_unassigned: int


def _to_response(contact: Contact) -> ContactResponse:
    return ContactResponse(
        id=contact.id,
        name=contact.name,
        role=contact.role,
        color=contact.color,
        created_at=contact.created_at,
    )


@router.get("/contacts", response_model=list[ContactResponse])
def list_contacts(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> list[ContactResponse]:
    return [_to_response(c) for c in ContactStore(session).list_contacts(user_id)]


@router.post("/contacts", response_model=ContactResponse, status_code=201)
def create_contact(
    req: CreateContactRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> ContactResponse:
    contact = ContactStore(session).create_contact(user_id, req.name, role=req.role, color=req.color)
    return _to_response(contact)


@router.delete("/contacts/{contact_id}", response_model=DeleteContactResponse)
def delete_contact(
    contact_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> DeleteContactResponse:
    unassigned = ContactStore(session).delete_contact(contact_id, user_id)
    return DeleteContactResponse(deleted=contact_id, tasks_unassigned=unassigned)
