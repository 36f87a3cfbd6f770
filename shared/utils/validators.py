"""
shared/utils/validators.py
Wire-level identifier parsing and email normalisation. Runs before any query touches the store.
"""

import uuid

from shared.exceptions.exceptions import InvalidIdentifier


def parse_object_id(raw: str, resource: str = "Resource") -> uuid.UUID:
    """Parse a path/body id into a UUID or raise InvalidIdentifier (400)."""
    try:
        return uuid.UUID(str(raw))
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdentifier(resource)


def normalize_email(raw: str) -> str:
    """Accounts are keyed by lowercase email; identity tokens arrive lowercased."""
    return raw.strip().lower()
