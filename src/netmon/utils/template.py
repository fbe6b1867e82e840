"""Message template system for outage notifications.

Templates use ``{placeholder}`` markers. They are validated at configuration
load time so an unknown placeholder fails fast instead of at the first
outage.
"""

import re
from collections.abc import Mapping, Set
from typing import Final

# Known placeholders that can be used in notification templates
KNOWN_PLACEHOLDERS: Final[Set[str]] = frozenset({
    "host",
    "outage_type",
    "packet_loss",
    "dns_status",
    "started_at",
    "duration",
})

# Matches {placeholder_name} format (lowercase letters, numbers, underscores)
PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(r"\{([a-z_][a-z0-9_]*)\}")


class TemplateError(ValueError):
    """Raised when template validation or processing fails."""


def identify_placeholders(template: str) -> Set[str]:
    """Identify all placeholders in a template string.

    Example:
        >>> sorted(identify_placeholders("{host} down for {duration}"))
        ['duration', 'host']
    """
    return frozenset(PLACEHOLDER_PATTERN.findall(template))


def validate_template(template: str) -> str:
    """Validate that a template only uses known placeholders.

    Returns:
        The template unchanged, so this can be used as a validator

    Raises:
        TemplateError: If template contains unknown placeholders
    """
    unknown = identify_placeholders(template) - KNOWN_PLACEHOLDERS
    if unknown:
        msg = (
            f"Template contains unknown placeholders: {sorted(unknown)}. "
            f"Known placeholders are: {sorted(KNOWN_PLACEHOLDERS)}"
        )
        raise TemplateError(msg)
    return template


def replace_placeholders(template: str, values: Mapping[str, object]) -> str:
    """Replace placeholders in template with provided values.

    Raises:
        TemplateError: If a placeholder in the template has no value

    Example:
        >>> replace_placeholders("Connection to {host} restored", {"host": "8.8.8.8"})
        'Connection to 8.8.8.8 restored'
    """
    missing = identify_placeholders(template) - values.keys()
    if missing:
        msg = f"Missing values for placeholders: {sorted(missing)}"
        raise TemplateError(msg)

    str_values = {key: str(value) for key, value in values.items()}
    return PLACEHOLDER_PATTERN.sub(lambda match: str_values[match.group(1)], template)
