"""Contact API endpoints.

Provides routes for:
- Public submissions: contact form and enrollment requests
- Admin inbox: list, read, assign, respond, status
- Statistics
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from src.auth.dependencies import StatsViewer
from src.contact.dependencies import (
    ContactManager,
    ContactServiceDep,
    handle_contact_error,
)
from src.contact.schemas import (
    AssignContactRequest,
    ContactListFilters,
    ContactRequest,
    ContactResponse,
    ContactResponsesResponse,
    ContactStatsResponse,
    ContactStatusRequest,
    ContactSubmittedResponse,
    EnrollmentInquiryRequest,
    EnrollmentInquiryResponse,
    InquiryCourse,
    RespondRequest,
)
from src.contact.service import ContactError
from src.core.middleware import get_client_ip
from src.core.pagination import Page, PageDep, paginate


router = APIRouter(prefix="/api/contact", tags=["contact"])


# ==============================================================================
# Public Forms
# ==============================================================================


@router.post(
    "",
    response_model=ContactSubmittedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a contact message",
)
async def submit_contact(
    data: ContactRequest,
    request: Request,
    service: ContactServiceDep,
) -> ContactSubmittedResponse:
    try:
        contact = await service.submit(
            data,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except ContactError as e:
        raise handle_contact_error(e) from e
    return ContactSubmittedResponse(
        message="Your message has been sent successfully. We will get back to you soon.",
        contact_id=contact.id,
    )


@router.post(
    "/enrollment-request",
    response_model=EnrollmentInquiryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request enrollment through the sales team",
)
async def submit_enrollment_request(
    data: EnrollmentInquiryRequest,
    request: Request,
    service: ContactServiceDep,
) -> EnrollmentInquiryResponse:
    try:
        contact, course = await service.submit_enrollment_inquiry(
            data,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except ContactError as e:
        raise handle_contact_error(e) from e
    return EnrollmentInquiryResponse(
        message=(
            "Your enrollment request has been submitted successfully. "
            "Our team will contact you soon to discuss payment and enrollment details."
        ),
        contact_id=contact.id,
        course=InquiryCourse(title=course.title, price=course.price),
    )


# ==============================================================================
# Admin Inbox
# ==============================================================================


@router.get("", response_model=Page[ContactResponse], summary="List contact messages")
async def list_contacts(
    _admin: ContactManager,
    service: ContactServiceDep,
    page: PageDep,
    filters: Annotated[ContactListFilters, Query()],
) -> Page[ContactResponse]:
    contacts = await service.list_contacts(filters)
    return paginate([ContactResponse.from_contact(c) for c in contacts], page)


@router.get(
    "/stats/overview",
    response_model=ContactStatsResponse,
    summary="Contact statistics",
)
async def contact_stats(
    _admin: StatsViewer,
    service: ContactServiceDep,
) -> ContactStatsResponse:
    return await service.get_stats()


@router.get(
    "/{contact_id}", response_model=ContactResponse, summary="Get contact message"
)
async def get_contact(
    contact_id: UUID,
    admin: ContactManager,
    service: ContactServiceDep,
) -> ContactResponse:
    try:
        contact = await service.read_contact(contact_id, admin)
    except ContactError as e:
        raise handle_contact_error(e) from e
    return ContactResponse.from_contact(contact)


@router.put(
    "/{contact_id}/assign",
    response_model=ContactResponse,
    summary="Assign a contact message",
)
async def assign_contact(
    contact_id: UUID,
    data: AssignContactRequest,
    admin: ContactManager,
    service: ContactServiceDep,
) -> ContactResponse:
    try:
        contact = await service.assign(contact_id, data.assigned_to, admin)
    except ContactError as e:
        raise handle_contact_error(e) from e
    return ContactResponse.from_contact(contact)


@router.post(
    "/{contact_id}/respond",
    response_model=ContactResponsesResponse,
    summary="Respond to a contact message",
)
async def respond_to_contact(
    contact_id: UUID,
    data: RespondRequest,
    admin: ContactManager,
    service: ContactServiceDep,
) -> ContactResponsesResponse:
    try:
        responses = await service.respond(
            contact_id, admin, data.message, data.is_internal
        )
    except ContactError as e:
        raise handle_contact_error(e) from e
    return ContactResponsesResponse(
        message="Response added successfully", responses=responses
    )


@router.put(
    "/{contact_id}/status",
    response_model=ContactResponse,
    summary="Change contact message status",
)
async def set_contact_status(
    contact_id: UUID,
    data: ContactStatusRequest,
    _admin: ContactManager,
    service: ContactServiceDep,
) -> ContactResponse:
    try:
        contact = await service.set_status(contact_id, data.status)
    except ContactError as e:
        raise handle_contact_error(e) from e
    return ContactResponse.from_contact(contact)
