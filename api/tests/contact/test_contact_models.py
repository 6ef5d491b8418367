"""Tests for the Contact entity."""

from uuid import uuid4

import pytest

from src.contact.models import (
    Contact,
    ContactPriority,
    ContactStatus,
    ContactType,
    priority_for,
)


def _contact(**kwargs) -> Contact:
    return Contact(
        name=kwargs.pop("name", "Ada Lovelace"),
        email=kwargs.pop("email", "  Ada@Example.com "),
        subject=kwargs.pop("subject", "Course question"),
        message=kwargs.pop("message", "Is the course available in the evening?"),
        **kwargs,
    )


class TestPriority:
    @pytest.mark.parametrize(
        "contact_type,expected",
        [
            (ContactType.TECHNICAL_SUPPORT, ContactPriority.HIGH),
            (ContactType.COMPLAINT, ContactPriority.HIGH),
            (ContactType.ENROLLMENT_REQUEST, ContactPriority.MEDIUM),
            (ContactType.COURSE_INQUIRY, ContactPriority.MEDIUM),
            (ContactType.GENERAL, ContactPriority.LOW),
            (ContactType.SUGGESTION, ContactPriority.LOW),
        ],
    )
    def test_priority_follows_type(
        self, contact_type: ContactType, expected: ContactPriority
    ) -> None:
        assert priority_for(contact_type) == expected
        assert _contact(type=contact_type.value).priority == expected

    def test_stored_priority_wins(self) -> None:
        contact = _contact(type="general", priority="urgent")
        assert contact.priority == ContactPriority.URGENT

    def test_email_is_normalized(self) -> None:
        assert _contact().email == "ada@example.com"


class TestHandling:
    def test_new_message(self) -> None:
        contact = _contact()
        assert contact.status == ContactStatus.NEW
        assert contact.is_read is False

    def test_read_receipts_are_unique(self) -> None:
        contact = _contact()
        admin_id = uuid4()
        assert contact.mark_read(admin_id) is True
        assert contact.mark_read(admin_id) is False
        assert contact.mark_read(uuid4()) is True
        assert len(contact.read_by) == 2

    def test_assign_starts_work(self) -> None:
        contact = _contact()
        admin_id = uuid4()
        contact.assign(admin_id)
        assert contact.assigned_to == admin_id
        assert contact.status == ContactStatus.IN_PROGRESS

    def test_public_reply_starts_work(self) -> None:
        contact = _contact()
        contact.add_response(uuid4(), "We run an evening cohort.")
        assert contact.status == ContactStatus.IN_PROGRESS

    def test_internal_note_keeps_status(self) -> None:
        contact = _contact()
        entry = contact.add_response(uuid4(), "Check with sales", is_internal=True)
        assert entry.is_internal is True
        assert contact.status == ContactStatus.NEW


class TestStatus:
    def test_resolved_is_stamped(self) -> None:
        contact = _contact()
        contact.set_status(ContactStatus.RESOLVED)
        assert contact.resolved_at is not None
        assert contact.closed_at is None

    def test_closed_is_stamped(self) -> None:
        contact = _contact()
        contact.set_status(ContactStatus.RESOLVED)
        contact.set_status(ContactStatus.CLOSED)
        assert contact.closed_at is not None
        assert contact.resolved_at is not None

    def test_reopening_clears_stamps(self) -> None:
        contact = _contact()
        contact.set_status(ContactStatus.RESOLVED)
        contact.set_status(ContactStatus.CLOSED)

        contact.set_status(ContactStatus.IN_PROGRESS)

        assert contact.status == ContactStatus.IN_PROGRESS
        assert contact.resolved_at is None
        assert contact.closed_at is None
