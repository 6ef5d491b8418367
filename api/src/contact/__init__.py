"""Contact module.

Provides:
- Public contact and enrollment-request forms
- Admin inbox for handling the messages

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.contact.models import CONTACTS_TABLES_CQL, Contact
from src.contact.service import ContactService


__all__ = [
    "CONTACTS_TABLES_CQL",
    "Contact",
    "ContactService",
]
