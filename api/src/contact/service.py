# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Contact service layer.

Business logic for:
- Public contact and enrollment-request submissions
- Admin inbox: listing, reading, assignment, responses, status changes
- Statistics
"""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.permissions import UserRole
from src.auth.schemas import UserResponse
from src.contact.models import (
    Contact,
    ContactPriority,
    ContactResponseEntry,
    ContactStatus,
    ContactType,
    EnrollmentDetails,
)
from src.contact.schemas import (
    ContactListFilters,
    ContactRequest,
    ContactResponse,
    ContactStatsResponse,
    EnrollmentInquiryRequest,
)
from src.core.documents import utc_now
from src.courses.models import Course
from src.notifications.models import NotificationType, ReferenceType


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.service import AuthService
    from src.courses.service import CourseService
    from src.notifications.service import NotificationService


logger = structlog.get_logger(__name__)

RECENT_CONTACTS_LIMIT = 10

PRIORITY_ORDER = {
    ContactPriority.LOW: 0,
    ContactPriority.MEDIUM: 1,
    ContactPriority.HIGH: 2,
    ContactPriority.URGENT: 3,
}


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ContactError(Exception):
    """Base contact error."""

    def __init__(self, message: str, code: str = "contact_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ContactNotFoundError(ContactError):
    def __init__(self, message: str = "Contact not found"):
        super().__init__(message, "contact_not_found")


class ContactCourseNotFoundError(ContactError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class InvalidAssigneeError(ContactError):
    def __init__(self, message: str = "Can only assign to admin users"):
        super().__init__(message, "invalid_assignee")


# ==============================================================================
# Service
# ==============================================================================


class ContactService:
    """Service for contact messages."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        notification_service: "NotificationService | None" = None,
        auth_service: "AuthService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.notification_service = notification_service
        self.auth_service = auth_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._save_contact = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.contacts
            (id, name, email, phone, subject, message, type, priority, status,
             assigned_to, course_of_interest, enrollment_details, responses, tags,
             is_read, read_by, ip_address, user_agent, source, follow_up_required,
             follow_up_date, resolved_at, closed_at, satisfaction, created_at,
             updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                    ?, ?, ?, ?, ?, ?)
        """)
        self._get_contact = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.contacts WHERE id = ?"
        )
        self._list_by_status = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.contacts WHERE status = ?"
        )
        self._list_all = self.session.prepare(f"SELECT * FROM {self.keyspace}.contacts")

    async def _save(self, contact: Contact) -> None:
        contact.updated_at = utc_now()
        await self.session.aexecute(
            self._save_contact,
            [
                contact.id,
                contact.name,
                contact.email,
                contact.phone,
                contact.subject,
                contact.message,
                contact.type.value,
                contact.priority.value,
                contact.status.value,
                contact.assigned_to,
                contact.course_of_interest,
                contact.enrollment_details_json,
                contact.responses_json,
                contact.tags,
                contact.is_read,
                contact.read_by_json,
                contact.ip_address,
                contact.user_agent,
                contact.source.value,
                contact.follow_up_required,
                contact.follow_up_date,
                contact.resolved_at,
                contact.closed_at,
                contact.satisfaction_json,
                contact.created_at,
                contact.updated_at,
            ],
        )

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def submit(
        self,
        data: ContactRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Contact:
        """Store a contact form message and alert the admins.

        Raises:
            ContactCourseNotFoundError: If ``course_of_interest`` is unknown
        """
        if data.course_of_interest is not None:
            course = await self.course_service.get_course(data.course_of_interest)
            if course is None:
                raise ContactCourseNotFoundError

        contact = Contact(
            name=data.name,
            email=data.email,
            phone=data.phone,
            subject=data.subject,
            message=data.message,
            type=data.type.value,
            course_of_interest=data.course_of_interest,
            enrollment_details=data.enrollment_details,
            ip_address=ip_address or "",
            user_agent=user_agent or "",
        )
        await self._save(contact)

        logger.info(
            "contact_submitted",
            contact_id=str(contact.id),
            type=contact.type.value,
            priority=contact.priority.value,
        )
        urgent = contact.priority in (ContactPriority.HIGH, ContactPriority.URGENT)
        await self._notify_admins(
            "New contact message",
            f"New {contact.type.value} message from {contact.name}: {contact.subject}",
            contact.id,
            NotificationType.WARNING if urgent else NotificationType.INFO,
        )
        return contact

    async def submit_enrollment_inquiry(
        self,
        data: EnrollmentInquiryRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[Contact, Course]:
        """Store an enrollment request for an active course.

        Returns:
            (contact, course)
        """
        course = await self.course_service.get_course(data.course_id)
        if course is None or not course.is_active:
            raise ContactCourseNotFoundError("Course not found or inactive")

        contact = Contact(
            name=data.name,
            email=data.email,
            phone=data.phone,
            subject=f"Enrollment Request for {course.title}"[:100],
            message=data.message,
            type=ContactType.ENROLLMENT_REQUEST.value,
            course_of_interest=course.id,
            enrollment_details=EnrollmentDetails(
                preferred_start_date=data.preferred_start_date,
                budget=data.budget,
                payment_method=data.payment_method,
                additional_requirements=data.additional_requirements,
            ),
            ip_address=ip_address or "",
            user_agent=user_agent or "",
        )
        await self._save(contact)

        logger.info(
            "enrollment_inquiry_submitted",
            contact_id=str(contact.id),
            course_id=str(course.id),
        )
        await self._notify_admins(
            "New enrollment request",
            f"{contact.name} has requested enrollment in {course.title}",
            contact.id,
            NotificationType.INFO,
        )
        return contact, course

    # ==========================================================================
    # Admin Inbox
    # ==========================================================================

    async def get_contact(self, contact_id: UUID) -> Contact | None:
        result = await self.session.aexecute(self._get_contact, [contact_id])
        row = result.one()
        return Contact.from_row(row) if row else None

    async def require_contact(self, contact_id: UUID) -> Contact:
        contact = await self.get_contact(contact_id)
        if contact is None:
            raise ContactNotFoundError
        return contact

    async def list_contacts(self, filters: ContactListFilters) -> list[Contact]:
        if filters.status:
            rows = await self.session.aexecute(
                self._list_by_status, [filters.status.value]
            )
        else:
            rows = await self.session.aexecute(self._list_all)

        contacts = [Contact.from_row(row) for row in rows]
        if filters.type:
            contacts = [c for c in contacts if c.type == filters.type]
        if filters.priority:
            contacts = [c for c in contacts if c.priority == filters.priority]
        if filters.search:
            needle = filters.search.lower()
            contacts = [
                c
                for c in contacts
                if needle in c.name.lower()
                or needle in c.email
                or needle in c.subject.lower()
            ]

        sort_keys = {
            "created_at": lambda c: c.created_at,
            "priority": lambda c: PRIORITY_ORDER[c.priority],
            "status": lambda c: c.status.value,
            "name": lambda c: c.name.lower(),
        }
        contacts.sort(
            key=sort_keys[filters.sort_by],
            reverse=filters.sort_order == "desc",
        )
        return contacts

    async def read_contact(self, contact_id: UUID, admin: UserResponse) -> Contact:
        """Open a message, marking it read by ``admin``."""
        contact = await self.require_contact(contact_id)
        if contact.mark_read(admin.id):
            await self._save(contact)
        return contact

    async def assign(
        self, contact_id: UUID, assignee_id: UUID, admin: UserResponse
    ) -> Contact:
        contact = await self.require_contact(contact_id)
        if self.auth_service is not None:
            assignee = await self.auth_service.get_user_by_id(assignee_id)
            if assignee is None or assignee.role != UserRole.ADMIN.value:
                raise InvalidAssigneeError

        contact.assign(assignee_id)
        await self._save(contact)
        logger.info(
            "contact_assigned",
            contact_id=str(contact.id),
            assigned_to=str(assignee_id),
            admin_id=str(admin.id),
        )
        if self.notification_service is not None and assignee_id != admin.id:
            await self.notification_service.notify(
                assignee_id,
                "Contact assigned to you",
                contact.subject,
                reference_type=ReferenceType.CONTACT,
                reference_id=contact.id,
            )
        return contact

    async def respond(
        self,
        contact_id: UUID,
        admin: UserResponse,
        message: str,
        is_internal: bool = False,
    ) -> list[ContactResponseEntry]:
        contact = await self.require_contact(contact_id)
        contact.add_response(admin.id, message, is_internal)
        await self._save(contact)
        logger.info(
            "contact_responded",
            contact_id=str(contact.id),
            admin_id=str(admin.id),
            internal=is_internal,
        )
        return contact.responses

    async def set_status(self, contact_id: UUID, status: ContactStatus) -> Contact:
        contact = await self.require_contact(contact_id)
        previous = contact.status
        contact.set_status(status)
        await self._save(contact)
        logger.info(
            "contact_status_changed",
            contact_id=str(contact.id),
            previous=previous.value,
            status=status.value,
        )
        return contact

    async def _notify_admins(
        self,
        title: str,
        message: str,
        contact_id: UUID,
        notification_type: NotificationType,
    ) -> None:
        if self.notification_service is None or self.auth_service is None:
            return
        admins = await self.auth_service.list_users_by_role(UserRole.ADMIN)
        await self.notification_service.notify_many(
            [admin.id for admin in admins],
            title,
            message,
            notification_type=notification_type,
            reference_type=ReferenceType.CONTACT,
            reference_id=contact_id,
        )

    # ==========================================================================
    # Statistics
    # ==========================================================================

    async def get_stats(self) -> ContactStatsResponse:
        rows = await self.session.aexecute(self._list_all)
        contacts = [Contact.from_row(row) for row in rows]
        statuses = Counter(c.status for c in contacts)
        types = Counter(c.type for c in contacts)
        recent = sorted(contacts, key=lambda c: c.created_at, reverse=True)

        return ContactStatsResponse(
            total_contacts=len(contacts),
            new_contacts=statuses[ContactStatus.NEW],
            in_progress_contacts=statuses[ContactStatus.IN_PROGRESS],
            resolved_contacts=statuses[ContactStatus.RESOLVED],
            closed_contacts=statuses[ContactStatus.CLOSED],
            by_type={t.value: n for t, n in types.items()},
            by_priority=dict(Counter(c.priority.value for c in contacts)),
            recent_contacts=[
                ContactResponse.from_contact(c)
                for c in recent[:RECENT_CONTACTS_LIMIT]
            ],
            enrollment_requests=types[ContactType.ENROLLMENT_REQUEST],
            technical_support=types[ContactType.TECHNICAL_SUPPORT],
        )
