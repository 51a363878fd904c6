"""Tests for template validation against event variables."""

import pytest

from notifier.modules.notification.application.services.default_templates import (
    DEFAULT_TEMPLATES,
)
from notifier.modules.notification.application.services.template_validation_service import (
    TemplateValidationService,
)


@pytest.fixture
def validation_service(renderer):
    return TemplateValidationService(renderer)


class TestTemplateValidation:
    """Test suite for validate_template."""

    def test_known_event_variables_are_valid(self, validation_service):
        content = (
            "SUBJECT: Hi {{ data.userName }}\n---\n"
            "<a href='{{ data.loginUrl }}'>{{ user.email }}</a>"
        )

        result = validation_service.validate_template(content, "user_registered")

        assert result.is_valid
        assert result.errors == []
        assert result.used_variables == ["data.loginUrl", "data.userName", "user.email"]
        assert "data.loginUrl" in result.available_variables

    def test_unknown_variable_is_an_error(self, validation_service):
        result = validation_service.validate_template(
            "Hello {{ data.x }} from {{ user.name }}", "USER_REGISTERED"
        )

        assert result.is_valid is False
        assert result.errors == ["Variable 'data.x' is not available for event USER_REGISTERED"]

    def test_unknown_root_is_an_error_even_without_schema(self, validation_service):
        result = validation_service.validate_template("{{ secrets.token }}", "CUSTOM_EVENT")

        assert result.is_valid is False
        assert "secrets.token" in result.errors[0]

    def test_loop_variables_are_local(self, validation_service):
        content = (
            "{% for change in data.changes %}"
            "{{ change.field }}: {{ change.oldValue }} -> {{ change.newValue }}"
            "{% endfor %}"
        )

        result = validation_service.validate_template(content, "DATA_CHANGED")

        assert result.is_valid
        assert "change.field" in result.used_variables

    def test_meta_is_free_form(self, validation_service):
        result = validation_service.validate_template(
            "Request {{ meta.requestId }} from {{ meta.origin.service }}", "PASSWORD_RESET"
        )

        assert result.is_valid

    def test_event_without_schema_only_warns_on_data(self, validation_service):
        result = validation_service.validate_template(
            "Order {{ data.orderId }} for {{ user.name }}", "ORDER_SHIPPED"
        )

        assert result.is_valid
        assert result.warnings == [
            "Variable 'data.orderId' is not available for event ORDER_SHIPPED"
        ]

    def test_syntax_error(self, validation_service):
        result = validation_service.validate_template(
            "{% if data.userName %}unterminated", "USER_REGISTERED"
        )

        assert result.is_valid is False
        assert result.errors[0].startswith("Template syntax error:")

    def test_validation_is_repeatable(self, validation_service):
        content = "{{ data.resetUrl }} {{ data.unknown }}"

        first = validation_service.validate_template(content, "PASSWORD_RESET")
        second = validation_service.validate_template(content, "PASSWORD_RESET")

        assert first == second

    @pytest.mark.parametrize(
        "definition",
        DEFAULT_TEMPLATES,
        ids=lambda d: f"{d.event_key}-{d.channel.value}",
    )
    def test_built_in_templates_are_valid(self, validation_service, definition):
        result = validation_service.validate_template(definition.content, definition.event_key)

        assert result.errors == []
        assert result.warnings == []


class TestEventStructure:
    """Test suite for the render structure of events."""

    def test_known_event_keys(self, validation_service):
        assert set(validation_service.get_known_event_keys()) == {
            "EMAIL_VERIFICATION",
            "PASSWORD_RESET",
            "PASSWORD_CHANGED",
            "DATA_CHANGED",
            "USER_REGISTERED",
        }

    def test_available_variables_include_base_structure(self, validation_service):
        variables = validation_service.get_available_variables("password_changed")

        for name in ("eventKey", "timestamp", "user.email", "user.externalId", "data.ipAddress"):
            assert name in variables

    def test_sample_data_renders_known_templates(self, validation_service, renderer):
        sample = validation_service.get_sample_data("PASSWORD_RESET")

        rendered = renderer.render("{{ data.resetUrl }}|{{ user.name }}", sample)

        assert rendered == "https://example.com/reset?token=sample|Jane Doe"
