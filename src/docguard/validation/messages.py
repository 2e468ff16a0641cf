"""Human-readable messages for field errors."""

import re
from datetime import date, datetime
from typing import Any

from docguard.schema.types import FieldRule
from docguard.validation.types import ErrorType

DEFAULT_TEMPLATES: dict[ErrorType, str] = {
    ErrorType.REQUIRED: "{label} is required",
    ErrorType.TYPE: "{label} must be of type {type}",
    ErrorType.MIN_NUMBER: "{label} must be at least {min}",
    ErrorType.MAX_NUMBER: "{label} cannot exceed {max}",
    ErrorType.MIN_STRING: "{label} must be at least {min} characters",
    ErrorType.MAX_STRING: "{label} cannot exceed {max} characters",
    ErrorType.MIN_DATE: "{label} must be on or after {min}",
    ErrorType.MAX_DATE: "{label} cannot be after {max}",
    ErrorType.MIN_COUNT: "You must specify at least {min} values",
    ErrorType.MAX_COUNT: "You cannot specify more than {max} values",
    ErrorType.NOT_ALLOWED: "{name} is not allowed by the schema",
    ErrorType.CUSTOM: "{label} is invalid",
}


class MessageInterpolator:
    """Fills ``{label}``, ``{name}``, ``{type}``, ``{min}`` and ``{max}`` into templates.

    Unknown placeholders are left as-is so a template typo never raises.
    """

    PATTERN = re.compile(r"\{(?P<key>\w+)\}")

    def __init__(self, templates: dict[ErrorType, str] | None = None):
        self.templates = {**DEFAULT_TEMPLATES, **(templates or {})}

    def message(
        self,
        error_type: ErrorType,
        name: str,
        label: str,
        rule: FieldRule | None = None,
    ) -> str:
        values = {
            "label": label,
            "name": name,
            "type": rule.type.display_name if rule else "",
            "min": self._format(rule.min) if rule else "",
            "max": self._format(rule.max) if rule else "",
        }

        def replace(match: re.Match) -> str:
            key = match.group("key")
            return values.get(key, match.group(0))

        return self.PATTERN.sub(replace, self.templates[error_type])

    def _format(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
