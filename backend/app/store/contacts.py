"""ContactStore — local, non-linked delegation targets."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Session, select

from app.clock import ensure_utc, utcnow
from app.errors import AuthorizationError, ValidationError
from app.models.task import Task
from app.models.team import DEFAULT_CONTACT_COLOR, Contact


class ContactStore:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def list_contacts(self, owner_id: str) -> list[Contact]:
        stmt = select(Contact).where(Contact.user_id == owner_id).order_by(Contact.created_at)
        return list(self.db.exec(stmt).all())

    def get_owned_contact(self, contact_id: str, owner_id: str) -> Contact:
        contact = self.db.get(Contact, contact_id)
        if contact is None or contact.user_id != owner_id:
            raise AuthorizationError()
        return contact

    def create_contact(
        self,
        owner_id: str,
        name: str,
        role: str | None = None,
        color: str | None = None,
        contact_id: str | None = None,
        now: datetime | None = None,
    ) -> Contact:
        if not name or not name.strip():
            raise ValidationError("Contact name is required.")
        contact = Contact(
            user_id=owner_id,
            name=name.strip(),
            role=role or None,
            color=color or DEFAULT_CONTACT_COLOR,
            created_at=ensure_utc(now) or utcnow(),
        )
        if contact_id:
            contact.id = contact_id
        self.db.add(contact)
        self.db.commit()
        self.db.refresh(contact)
        return contact

    def delete_contact(self, contact_id: str, owner_id: str) -> int:
        """Delete a contact and unassign it from the owner's tasks.

        Returns:
            Number of tasks that were unassigned.
        """
        contact = self.get_owned_contact(contact_id, owner_id)
        tasks = self.db.exec(
            select(Task).where(Task.user_id == owner_id).where(Task.assigned_contact_id == contact.id)
        ).all()
        for task in tasks:
            task.assigned_contact_id = None
            self.db.add(task)
        self.db.delete(contact)
        self.db.commit()
        return len(tasks)
