"""Pydantic schemas for contact messages."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from src.contact.models import (
    Contact,
    ContactPriority,
    ContactResponseEntry,
    ContactSource,
    ContactStatus,
    ContactType,
    EnrollmentDetails,
    PaymentMethod,
    ReadReceipt,
    Satisfaction,
)


# ==============================================================================
# Requests
# ==============================================================================


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str = Field("", max_length=20)
    subject: str = Field(..., min_length=5, max_length=100)
    message: str = Field(..., min_length=10, max_length=1000)
    type: ContactType = ContactType.GENERAL
    course_of_interest: UUID | None = None
    enrollment_details: EnrollmentDetails | None = None


class EnrollmentInquiryRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str = Field("", max_length=20)
    course_id: UUID
    message: str = Field(..., min_length=10, max_length=1000)
    preferred_start_date: datetime | None = None
    budget: Decimal | None = Field(None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.OTHER
    additional_requirements: str = Field("", max_length=1000)


class AssignContactRequest(BaseModel):
    assigned_to: UUID


class RespondRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)
    is_internal: bool = False


class ContactStatusRequest(BaseModel):
    status: ContactStatus


class ContactListFilters(BaseModel):
    status: ContactStatus | None = None
    type: ContactType | None = None
    priority: ContactPriority | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal["created_at", "priority", "status", "name"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


# ==============================================================================
# Responses
# ==============================================================================


class ContactSubmittedResponse(BaseModel):
    message: str
    contact_id: UUID


class InquiryCourse(BaseModel):
    title: str
    price: Decimal


class EnrollmentInquiryResponse(ContactSubmittedResponse):
    course: InquiryCourse


class ContactResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    subject: str
    message: str
    type: ContactType
    priority: ContactPriority
    status: ContactStatus
    assigned_to: UUID | None = None
    course_of_interest: UUID | None = None
    enrollment_details: EnrollmentDetails | None = None
    responses: list[ContactResponseEntry]
    tags: list[str]
    is_read: bool
    read_by: list[ReadReceipt]
    ip_address: str
    user_agent: str
    source: ContactSource
    follow_up_required: bool
    follow_up_date: datetime | None = None
    is_follow_up_due: bool
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    satisfaction: Satisfaction | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactResponse":
        return cls(
            id=contact.id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            subject=contact.subject,
            message=contact.message,
            type=contact.type,
            priority=contact.priority,
            status=contact.status,
            assigned_to=contact.assigned_to,
            course_of_interest=contact.course_of_interest,
            enrollment_details=contact.enrollment_details,
            responses=contact.responses,
            tags=contact.tags,
            is_read=contact.is_read,
            read_by=contact.read_by,
            ip_address=contact.ip_address,
            user_agent=contact.user_agent,
            source=contact.source,
            follow_up_required=contact.follow_up_required,
            follow_up_date=contact.follow_up_date,
            is_follow_up_due=contact.is_follow_up_due,
            resolved_at=contact.resolved_at,
            closed_at=contact.closed_at,
            satisfaction=contact.satisfaction,
            created_at=contact.created_at,
            updated_at=contact.updated_at,
        )


class ContactResponsesResponse(BaseModel):
    message: str
    responses: list[ContactResponseEntry]


class ContactStatsResponse(BaseModel):
    total_contacts: int
    new_contacts: int
    in_progress_contacts: int
    resolved_contacts: int
    closed_contacts: int
    by_type: dict[str, int]
    by_priority: dict[str, int]
    recent_contacts: list[ContactResponse]
    enrollment_requests: int
    technical_support: int
