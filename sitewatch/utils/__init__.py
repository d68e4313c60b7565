"""Shared utility functions and helpers"""
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

__all__ = [
    "format_success_response",
    "paginated",
    "validate_pagination",
]
