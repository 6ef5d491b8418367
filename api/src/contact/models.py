"""Database models for contact messages.

Cassandra table definitions for:
- Contacts: messages sent through the public contact and enrollment-request
  forms, worked through by admins
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.core.documents import (
    dump_document,
    dump_documents,
    ensure_utc_aware,
    load_document,
    load_documents,
    utc_now,
)


class ContactType(str, Enum):
    GENERAL = "general"
    COURSE_INQUIRY = "course-inquiry"
    TECHNICAL_SUPPORT = "technical-support"
    ENROLLMENT_REQUEST = "enrollment-request"
    COMPLAINT = "complaint"
    SUGGESTION = "suggestion"


class ContactPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ContactStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ContactSource(str, Enum):
    WEBSITE = "website"
    MOBILE_APP = "mobile-app"
    EMAIL = "email"
    PHONE = "phone"
    OTHER = "other"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit-card"
    BANK_TRANSFER = "bank-transfer"
    PAYPAL = "paypal"
    OTHER = "other"


TYPE_PRIORITIES = {
    ContactType.TECHNICAL_SUPPORT: ContactPriority.HIGH,
    ContactType.COMPLAINT: ContactPriority.HIGH,
    ContactType.ENROLLMENT_REQUEST: ContactPriority.MEDIUM,
    ContactType.COURSE_INQUIRY: ContactPriority.MEDIUM,
}


def priority_for(contact_type: ContactType) -> ContactPriority:
    """Initial priority of a message of ``contact_type``."""
    return TYPE_PRIORITIES.get(contact_type, ContactPriority.LOW)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CONTACTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.contacts (
    id UUID PRIMARY KEY,
    name TEXT,
    email TEXT,
    phone TEXT,
    subject TEXT,
    message TEXT,
    type TEXT,
    priority TEXT,
    status TEXT,
    assigned_to UUID,
    course_of_interest UUID,
    enrollment_details TEXT,
    responses TEXT,
    tags LIST<TEXT>,
    is_read BOOLEAN,
    read_by TEXT,
    ip_address TEXT,
    user_agent TEXT,
    source TEXT,
    follow_up_required BOOLEAN,
    follow_up_date TIMESTAMP,
    resolved_at TIMESTAMP,
    closed_at TIMESTAMP,
    satisfaction TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

CONTACTS_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS contacts_status_idx ON {keyspace}.contacts (status)
"""

CONTACTS_TABLES_CQL = [CONTACTS_TABLE_CQL, CONTACTS_STATUS_INDEX_CQL]


# ==============================================================================
# Embedded Documents
# ==============================================================================


class EnrollmentDetails(BaseModel):
    preferred_start_date: datetime | None = None
    budget: Decimal | None = Field(None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.OTHER
    additional_requirements: str = Field("", max_length=1000)


class ContactResponseEntry(BaseModel):
    responded_by: UUID
    message: str = Field(..., max_length=1000)
    is_internal: bool = False
    responded_at: datetime = Field(default_factory=utc_now)


class ReadReceipt(BaseModel):
    user_id: UUID
    read_at: datetime = Field(default_factory=utc_now)


class Satisfaction(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: str = ""
    rated_at: datetime = Field(default_factory=utc_now)


# ==============================================================================
# Entity Classes
# ==============================================================================


class Contact:
    """Contact message and its handling history."""

    def __init__(
        self,
        name: str,
        email: str,
        subject: str,
        message: str,
        id: UUID | None = None,
        phone: str = "",
        type: str = ContactType.GENERAL.value,
        priority: str | None = None,
        status: str = ContactStatus.NEW.value,
        assigned_to: UUID | None = None,
        course_of_interest: UUID | None = None,
        enrollment_details: EnrollmentDetails | None = None,
        responses: list[ContactResponseEntry] | None = None,
        tags: list[str] | None = None,
        is_read: bool = False,
        read_by: list[ReadReceipt] | None = None,
        ip_address: str = "",
        user_agent: str = "",
        source: str = ContactSource.WEBSITE.value,
        follow_up_required: bool = False,
        follow_up_date: datetime | None = None,
        resolved_at: datetime | None = None,
        closed_at: datetime | None = None,
        satisfaction: Satisfaction | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.email = email.lower().strip()
        self.phone = phone or ""
        self.subject = subject.strip()
        self.message = message
        self.type = ContactType(type)
        self.priority = ContactPriority(priority) if priority else priority_for(self.type)
        self.status = ContactStatus(status)
        self.assigned_to = assigned_to
        self.course_of_interest = course_of_interest
        self.enrollment_details = enrollment_details
        self.responses = list(responses or [])
        self.tags = list(tags or [])
        self.is_read = is_read
        self.read_by = list(read_by or [])
        self.ip_address = ip_address or ""
        self.user_agent = user_agent or ""
        self.source = ContactSource(source)
        self.follow_up_required = follow_up_required
        self.follow_up_date = ensure_utc_aware(follow_up_date)
        self.resolved_at = ensure_utc_aware(resolved_at)
        self.closed_at = ensure_utc_aware(closed_at)
        self.satisfaction = satisfaction
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Contact":
        """Create Contact instance from Cassandra row."""
        return cls(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            subject=row.subject,
            message=row.message,
            type=row.type,
            priority=row.priority,
            status=row.status,
            assigned_to=row.assigned_to,
            course_of_interest=row.course_of_interest,
            enrollment_details=load_document(EnrollmentDetails, row.enrollment_details),
            responses=load_documents(ContactResponseEntry, row.responses),
            tags=row.tags,
            is_read=row.is_read,
            read_by=load_documents(ReadReceipt, row.read_by),
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            source=row.source,
            follow_up_required=row.follow_up_required,
            follow_up_date=row.follow_up_date,
            resolved_at=row.resolved_at,
            closed_at=row.closed_at,
            satisfaction=load_document(Satisfaction, row.satisfaction),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def enrollment_details_json(self) -> str | None:
        return dump_document(self.enrollment_details)

    @property
    def responses_json(self) -> str:
        return dump_documents(ContactResponseEntry, self.responses)

    @property
    def read_by_json(self) -> str:
        return dump_documents(ReadReceipt, self.read_by)

    @property
    def satisfaction_json(self) -> str | None:
        return dump_document(self.satisfaction)

    @property
    def is_follow_up_due(self) -> bool:
        return (
            self.follow_up_required
            and self.follow_up_date is not None
            and self.follow_up_date <= utc_now()
            and self.status != ContactStatus.CLOSED
        )

    def mark_read(self, user_id: UUID) -> bool:
        """Record that an admin opened the message.

        Returns:
            True if anything changed
        """
        changed = not self.is_read
        self.is_read = True
        if not any(receipt.user_id == user_id for receipt in self.read_by):
            self.read_by.append(ReadReceipt(user_id=user_id))
            changed = True
        return changed

    def assign(self, user_id: UUID) -> None:
        self.assigned_to = user_id
        self.status = ContactStatus.IN_PROGRESS

    def add_response(
        self, user_id: UUID, message: str, is_internal: bool = False
    ) -> ContactResponseEntry:
        """Append a response; a public reply to a new message starts work on it."""
        entry = ContactResponseEntry(
            responded_by=user_id, message=message, is_internal=is_internal
        )
        self.responses.append(entry)
        if not is_internal and self.status == ContactStatus.NEW:
            self.status = ContactStatus.IN_PROGRESS
        return entry

    def set_status(self, status: ContactStatus) -> None:
        """Move to ``status``, stamping resolution and closing times.

        Reopening a closed message clears both stamps.
        """
        now = utc_now()
        if status == ContactStatus.RESOLVED:
            self.resolved_at = now
        elif status == ContactStatus.CLOSED:
            self.closed_at = now
        elif status == ContactStatus.IN_PROGRESS and self.status == ContactStatus.CLOSED:
            self.resolved_at = None
            self.closed_at = None
        self.status = status

    def __repr__(self) -> str:
        return f"<Contact {self.subject} ({self.id}) {self.status.value}>"
