"""Shared utility modules.

This package provides pure, stateless helpers for:
- Duration, latency and percentage formatting
- Notification message templates
"""

from netmon.utils.formatting import (
    Grade,
    format_duration,
    format_latency,
    format_percent,
    format_timestamp,
)
from netmon.utils.template import (
    KNOWN_PLACEHOLDERS,
    TemplateError,
    identify_placeholders,
    replace_placeholders,
    validate_template,
)

__all__ = [
    # Formatting utilities
    "Grade",
    "format_duration",
    "format_latency",
    "format_percent",
    "format_timestamp",
    # Template system
    "KNOWN_PLACEHOLDERS",
    "TemplateError",
    "identify_placeholders",
    "replace_placeholders",
    "validate_template",
]
