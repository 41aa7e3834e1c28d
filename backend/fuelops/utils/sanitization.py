"""
Input sanitization utilities for API payloads.
Provides functions to clean free-text fields typed on the field devices.
"""

import re
from typing import Optional


def sanitize_string(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    # Remove leading/trailing whitespace and dangerous characters
    value = value.strip()
    # Remove control characters
    value = re.sub(r'[\x00-\x1F\x7F]', '', value)
    # Escape HTML
    value = value.replace('<', '&lt;').replace('>', '&gt;')
    return value


def digits_only(value: Optional[str]) -> str:
    """Strip everything but digits (phone numbers typed with spaces, dashes or '+')."""
    return re.sub(r'\D', '', value or '')
