"""Tests for the Jinja2 template renderer and content formatter."""

import json

import pytest

from notifier.modules.notification.domain.errors import TemplateRenderingError
from notifier.modules.notification.domain.value_objects import ParsedTemplate
from notifier.modules.notification.infrastructure.engines.jinja_engine import (
    ContentFormatter,
    JinjaTemplateRenderer,
    TemplateCache,
)


class TestRendering:
    """Test suite for JinjaTemplateRenderer.render."""

    def test_simple_interpolation(self, renderer):
        assert renderer.render("Hello {{ name }}", {"name": "Ana"}) == "Hello Ana"

    def test_missing_variable_renders_default(self, renderer):
        """Test that undefined variables at any depth never raise."""
        assert renderer.render("Hello {{ name }}!", {}) == "Hello !"
        assert renderer.render("{{ user.profile.city }}", {"user": {}}) == ""

    def test_configured_missing_value(self):
        renderer = JinjaTemplateRenderer(missing_value="N/A")

        assert renderer.render("City: {{ user.city }}", {"user": {}}) == "City: N/A"

    def test_conditionals_and_loops(self, renderer):
        content = (
            "{% if data.changes %}"
            "{% for change in data.changes %}{{ change.field }};{% endfor %}"
            "{% else %}none{% endif %}"
        )

        changes = [{"field": "email"}, {"field": "name"}]
        changed = renderer.render(content, {"data": {"changes": changes}})
        unchanged = renderer.render(content, {"data": {}})

        assert changed == "email;name;"
        assert unchanged == "none"

    def test_json_filter(self, renderer):
        rendered = renderer.render("{{ data | json }}", {"data": {"count": 2, "name": "Zoë"}})

        assert json.loads(rendered) == {"count": 2, "name": "Zoë"}

    def test_json_filter_indent_and_undefined(self, renderer):
        assert renderer.render("{{ data | json(2) }}", {"data": {"a": 1}}) == '{\n  "a": 1\n}'
        assert renderer.render("{{ missing | json }}", {}) == "null"

    def test_html_is_not_escaped(self, renderer):
        assert renderer.render("{{ body }}", {"body": "<b>hi</b>"}) == "<b>hi</b>"

    def test_syntax_error_raises_rendering_error(self, renderer):
        with pytest.raises(TemplateRenderingError) as exc_info:
            renderer.render("{% if user %}unclosed", {"user": "x"})

        assert exc_info.value.details["template_excerpt"] == "{% if user %}unclosed"

    def test_runtime_error_raises_rendering_error(self, renderer):
        with pytest.raises(TemplateRenderingError):
            renderer.render("{{ 1 / count }}", {"count": 0})

    def test_compiled_templates_are_cached(self, renderer):
        renderer.render("Hello {{ name }}", {"name": "a"})
        renderer.render("Hello {{ name }}", {"name": "b"})

        assert len(renderer.cache) == 1

    def test_render_message_renders_header(self, renderer):
        parsed = ParsedTemplate.parse("SUBJECT: Hi {{ user.name }}\n---\n<p>{{ data.code }}</p>")

        message = renderer.render_message(parsed, {"user": {"name": "Ana"}, "data": {"code": "42"}})

        assert message.header.subject == "Hi Ana"
        assert message.body == "<p>42</p>"


class TestInspection:
    """Test suite for syntax validation and variable extraction."""

    def test_extract_variables(self, renderer):
        """Test the lexical scan over interpolations, loops and guards."""
        content = (
            "{{ user.name }} has {{ count }} items "
            "{% for i in items %}{{ i.label }}{% endfor %}"
        )

        expected = {"user.name", "count", "items", "i.label"}
        assert set(renderer.extract_variables(content)) == expected

    def test_extract_variables_ignores_filters_and_dedupes(self, renderer):
        content = "{{ data | json(2) }} {{ data }} {% if meta.flag %}x{% endif %}{{- user.id -}}"

        assert renderer.extract_variables(content) == ["data", "meta.flag", "user.id"]

    def test_loop_variables(self, renderer):
        content = "{% for change in data.changes %}{{ change.field }}{% endfor %}"

        assert renderer.loop_variables(content) == {"change"}

    def test_validate_syntax(self, renderer):
        assert renderer.validate_syntax("{% for x in items %}{{ x }}{% endfor %}") == (True, None)

        is_valid, error = renderer.validate_syntax("{% for x in items %}{{ x }}")

        assert is_valid is False
        assert "line 1" in error

    def test_preview_uses_sample_data(self, renderer):
        preview = renderer.create_preview("{{ user.name }} <{{ user.email }}>")

        assert preview == "Jane Doe <jane.doe@example.com>"

    def test_preview_with_explicit_data(self, renderer):
        assert renderer.create_preview("{{ data.x }}", {"data": {"x": "42"}}) == "42"


class TestTemplateCache:
    """Test suite for TemplateCache."""

    def test_least_recently_used_entry_is_evicted(self, renderer):
        cache = TemplateCache(max_size=2)
        first = renderer.env.from_string("a")
        cache.set("a", first)
        cache.set("b", renderer.env.from_string("b"))
        cache.get("a")
        cache.set("c", renderer.env.from_string("c"))

        assert cache.get("a") is first
        assert cache.get("b") is None
        assert len(cache) == 2


class TestContentFormatter:
    """Test suite for ContentFormatter."""

    def test_html_to_text(self):
        html = (
            "<style>p {color: red}</style><h1>Hi&nbsp;there</h1>\n"
            "<p>Click <a href='#'>here</a> &amp; go</p>"
        )

        assert ContentFormatter.html_to_text(html) == "Hi there Click here & go"

    def test_format_for_push_truncates(self):
        title, body = ContentFormatter.format_for_push("t" * 70, "b" * 300)

        assert len(title) == 65 and title.endswith("...")
        assert len(body) == 240 and body.endswith("...")
