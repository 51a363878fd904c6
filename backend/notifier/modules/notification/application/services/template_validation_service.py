"""Template validation against the variables an event makes available.

Every event renders with the same base structure (`eventKey`, `timestamp`,
`data`, `user`, `meta`). Known events additionally declare the keys they
put under `data`.
"""

from datetime import UTC, datetime
from typing import Any

from notifier.core.logging import get_logger
from notifier.modules.notification.application.dto import TemplateValidationResult
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    JinjaTemplateRenderer,
)

logger = get_logger(__name__)

# Sample values double as the declared schema of each event's `data`
_SECURITY_CHANGE_DATA: dict[str, Any] = {
    "userName": "Jane Doe",
    "changeDate": "2025-01-15",
    "changeTime": "14:30:00",
    "ipAddress": "203.0.113.10",
    "device": "Firefox on Linux",
    "securityUrl": "https://example.com/account/security",
}

EVENT_DATA_SCHEMAS: dict[str, dict[str, Any]] = {
    "EMAIL_VERIFICATION": {
        "userName": "Jane Doe",
        "verificationUrl": "https://example.com/verify?token=sample",
        "supportUrl": "https://example.com/support",
    },
    "PASSWORD_RESET": {
        "userName": "Jane Doe",
        "resetUrl": "https://example.com/reset?token=sample",
        "expiresAt": "2025-01-15T15:30:00Z",
    },
    "PASSWORD_CHANGED": dict(_SECURITY_CHANGE_DATA),
    "DATA_CHANGED": {
        **_SECURITY_CHANGE_DATA,
        "changes": [
            {"field": "email", "oldValue": "old@example.com", "newValue": "new@example.com"},
        ],
        "supportUrl": "https://example.com/support",
    },
    "USER_REGISTERED": {
        "userName": "Jane Doe",
        "loginUrl": "https://example.com/login",
    },
}

# Roots whose contents are not declared anywhere
FREE_FORM_ROOTS = frozenset({"meta"})
# Names jinja provides inside templates
TEMPLATE_BUILTINS = frozenset({"loop", "true", "false", "none", "True", "False", "None"})


class TemplateValidationService:
    """Checks template syntax and variable usage for an event."""

    def __init__(self, renderer: JinjaTemplateRenderer | None = None):
        self.renderer = renderer or JinjaTemplateRenderer()

    def get_known_event_keys(self) -> list[str]:
        return list(EVENT_DATA_SCHEMAS)

    def has_schema(self, event_key: str) -> bool:
        return event_key.upper() in EVENT_DATA_SCHEMAS

    def get_data_structure(self, event_key: str) -> dict[str, Any]:
        """Base render structure with the event's declared `data` keys."""
        event_key = event_key.upper()
        return {
            "eventKey": event_key,
            "timestamp": "",
            "data": dict(EVENT_DATA_SCHEMAS.get(event_key, {})),
            "user": {"id": "", "name": "", "email": "", "externalId": ""},
            "meta": {},
        }

    def get_available_variables(self, event_key: str) -> list[str]:
        """Flattened dotted names of every variable available to the event."""
        return self._flatten(self.get_data_structure(event_key))

    def get_sample_data(self, event_key: str) -> dict[str, Any]:
        event_key = event_key.upper()
        return {
            "eventKey": event_key,
            "timestamp": datetime.now(UTC).isoformat(),
            "data": dict(EVENT_DATA_SCHEMAS.get(event_key, {})),
            "user": {
                "id": "sample-user-id",
                "name": "Jane Doe",
                "email": "jane.doe@example.com",
                "externalId": "ext-123",
            },
            "meta": {"origin": "validation-test", "requestId": "sample-request-id"},
        }

    def validate_template(self, content: str, event_key: str) -> TemplateValidationResult:
        """Validate template content against an event.

        Header lines are part of the content and are checked like the body.

        Args:
            content: Raw template content
            event_key: Event the template is written for

        Returns:
            TemplateValidationResult: errors, warnings and the variables involved
        """
        event_key = event_key.upper()
        errors: list[str] = []
        warnings: list[str] = []

        is_valid_syntax, syntax_error = self.renderer.validate_syntax(content)
        if not is_valid_syntax:
            errors.append(f"Template syntax error: {syntax_error}")

        used_variables = self.renderer.extract_variables(content)
        loop_variables = self.renderer.loop_variables(content)
        structure = self.get_data_structure(event_key)
        has_schema = self.has_schema(event_key)

        for variable in used_variables:
            root = variable.split(".", 1)[0]
            if root in loop_variables or root in FREE_FORM_ROOTS or root in TEMPLATE_BUILTINS:
                continue
            if self._is_available(variable, structure):
                continue

            message = f"Variable '{variable}' is not available for event {event_key}"
            if root == "data" and not has_schema:
                warnings.append(message)
            else:
                errors.append(message)

        logger.debug(
            "Template validated",
            event_key=event_key,
            is_valid=not errors,
            errors_count=len(errors),
            warnings_count=len(warnings),
        )

        return TemplateValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            used_variables=used_variables,
            available_variables=self._flatten(structure),
        )

    @staticmethod
    def _is_available(variable: str, structure: dict[str, Any]) -> bool:
        current: Any = structure
        for part in variable.split("."):
            if not isinstance(current, dict) or part not in current:
                return False
            current = current[part]
        return True

    @classmethod
    def _flatten(cls, data: dict[str, Any], prefix: str = "") -> list[str]:
        names: list[str] = []
        for key, value in data.items():
            name = f"{prefix}.{key}" if prefix else key
            names.append(name)
            if isinstance(value, dict):
                names.extend(cls._flatten(value, name))
        return names
