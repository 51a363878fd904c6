"""Jinja2-based template engine for notification rendering."""

import html
import json
import re
from collections import OrderedDict
from datetime import UTC, datetime
from typing import Any

import jinja2
from jinja2 import BaseLoader, ChainableUndefined, Template
from jinja2.sandbox import SandboxedEnvironment

from notifier.core.logging import get_logger
from notifier.modules.notification.domain.errors import TemplateRenderingError
from notifier.modules.notification.domain.value_objects import (
    MessageHeader,
    ParsedTemplate,
    RenderedMessage,
)

logger = get_logger(__name__)

_PATH = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*"
VARIABLE_PATTERN = re.compile(r"\{\{-?\s*(" + _PATH + r")\s*(?:\|[^}]*)?-?\}\}")
FOR_LOOP_PATTERN = re.compile(
    r"\{%-?\s*for\s+([A-Za-z_][A-Za-z0-9_]*)\s+in\s+(" + _PATH + r")\s*-?%\}"
)
CONDITIONAL_PATTERN = re.compile(r"\{%-?\s*(?:if|elif)\s+(" + _PATH + r")\s*-?%\}")

_RENDER_ERRORS = (
    jinja2.TemplateError,
    TypeError,
    ValueError,
    ArithmeticError,
    LookupError,
)


def _make_default_undefined(default: str) -> type[ChainableUndefined]:
    """Undefined type that renders as `default` at any attribute depth."""

    class DefaultUndefined(ChainableUndefined):
        __slots__ = ()

        def __str__(self) -> str:
            return default

    return DefaultUndefined


class TemplateCache:
    """In-memory LRU cache for compiled templates."""

    def __init__(self, max_size: int = 500):
        """Initialize template cache.

        Args:
            max_size: Maximum number of templates to cache
        """
        self.max_size = max_size
        self._cache: OrderedDict[str, Template] = OrderedDict()

    def get(self, key: str) -> Template | None:
        template = self._cache.get(key)
        if template is not None:
            self._cache.move_to_end(key)
        return template

    def set(self, key: str, template: Template) -> None:
        if key in self._cache:
            self._cache.move_to_end(key)
        elif len(self._cache) >= self.max_size:
            self._cache.popitem(last=False)
        self._cache[key] = template

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class ContentFormatter:
    """Formats rendered content for different channels."""

    @staticmethod
    def html_to_text(html_content: str) -> str:
        """Convert an HTML body into a single-line plain text alternative.

        Args:
            html_content: HTML content

        Returns:
            Plain text content
        """
        text = re.sub(
            r"<style[^>]*>.*?</style>", "", html_content, flags=re.DOTALL | re.IGNORECASE
        )
        text = re.sub(
            r"<script[^>]*>.*?</script>", "", text, flags=re.DOTALL | re.IGNORECASE
        )
        text = re.sub(r"<[^>]+>", "", text)
        text = html.unescape(text).replace("\xa0", " ")
        return re.sub(r"\s+", " ", text).strip()

    @staticmethod
    def format_for_push(
        title: str, body: str, max_title: int = 65, max_body: int = 240
    ) -> tuple[str, str]:
        """Truncate title and body to what push providers display."""
        if len(title) > max_title:
            title = title[: max_title - 3] + "..."
        if len(body) > max_body:
            body = body[: max_body - 3] + "..."
        return title, body


class JinjaTemplateRenderer:
    """Renders notification templates and inspects their variable usage.

    Supports `{{ var }}` interpolation, `{% if %}` conditionals and
    `{% for %}` loops. Missing variables, at any depth, render to
    `missing_value` instead of raising.
    """

    def __init__(
        self,
        cache: TemplateCache | None = None,
        missing_value: str = "",
    ):
        """Initialize template renderer.

        Args:
            cache: Compiled template cache
            missing_value: Text rendered in place of undefined variables
        """
        self.cache = cache or TemplateCache()
        self.missing_value = missing_value
        self.env = SandboxedEnvironment(
            autoescape=False,
            loader=BaseLoader(),
            undefined=_make_default_undefined(missing_value),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["json"] = self._filter_json

    @staticmethod
    def _filter_json(value: Any, indent: int | None = None) -> str:
        if isinstance(value, jinja2.Undefined):
            value = None
        return json.dumps(value, indent=indent, default=str, ensure_ascii=False)

    def _compile(self, content: str) -> Template:
        template = self.cache.get(content)
        if template is None:
            template = self.env.from_string(content)
            self.cache.set(content, template)
        return template

    def render(self, content: str, data: dict[str, Any]) -> str:
        """Render a template string with data.

        Args:
            content: Template markup
            data: Variables available to the template

        Returns:
            Rendered text

        Raises:
            TemplateRenderingError: On syntax errors or failing expressions
        """
        try:
            return self._compile(content).render(**data)
        except _RENDER_ERRORS as e:
            logger.error(
                "Template rendering failed",
                error=str(e),
                template_excerpt=content[:200],
            )
            raise TemplateRenderingError(str(e), template_excerpt=content[:200]) from e

    def render_message(
        self, parsed: ParsedTemplate, data: dict[str, Any]
    ) -> RenderedMessage:
        """Render the header directives and body of a decoded template."""
        directives = {
            key: self.render(value, data) for key, value in parsed.header.directives.items()
        }
        return RenderedMessage(
            header=MessageHeader(directives), body=self.render(parsed.body, data)
        )

    def validate_syntax(self, content: str) -> tuple[bool, str | None]:
        """Parse a template without rendering it.

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.env.parse(content)
            return True, None
        except jinja2.TemplateSyntaxError as e:
            logger.debug("Template syntax invalid", error=str(e), line=e.lineno)
            return False, f"{e.message} (line {e.lineno})"

    def extract_variables(self, content: str) -> list[str]:
        """Collect variable references through a lexical scan.

        Picks up interpolated paths (filters are ignored), the collection of
        each for loop and the guard of each conditional.

        Returns:
            Sorted, de-duplicated variable names
        """
        variables: set[str] = set(VARIABLE_PATTERN.findall(content))
        variables.update(collection for _, collection in FOR_LOOP_PATTERN.findall(content))
        variables.update(CONDITIONAL_PATTERN.findall(content))
        return sorted(variables)

    def loop_variables(self, content: str) -> set[str]:
        """Names bound by for loops, which are local to the template."""
        return {binder for binder, _ in FOR_LOOP_PATTERN.findall(content)}

    def create_preview(
        self, content: str, sample_data: dict[str, Any] | None = None
    ) -> str:
        """Render a template against representative sample values."""
        return self.render(content, sample_data or self.generate_sample_data())

    @staticmethod
    def generate_sample_data() -> dict[str, Any]:
        now = datetime.now(UTC)
        return {
            "eventKey": "SAMPLE_EVENT",
            "timestamp": now.isoformat(),
            "user": {
                "id": "12345",
                "name": "Jane Doe",
                "email": "jane.doe@example.com",
                "externalId": "ext-12345",
                "firstName": "Jane",
                "lastName": "Doe",
            },
            "data": {
                "title": "Sample title",
                "message": "This is a sample message for the template preview.",
                "url": "https://example.com",
                "date": now.strftime("%Y-%m-%d"),
                "time": now.strftime("%H:%M:%S"),
                "items": [
                    {"name": "Item 1", "value": "Value 1"},
                    {"name": "Item 2", "value": "Value 2"},
                    {"name": "Item 3", "value": "Value 3"},
                ],
                "count": 3,
                "total": 150.99,
                "isActive": True,
                "metadata": {"source": "system", "version": "1.0"},
            },
            "meta": {
                "origin": "preview-generator",
                "timestamp": now.isoformat(),
                "requestId": "preview-12345",
            },
        }


__all__ = [
    "ContentFormatter",
    "JinjaTemplateRenderer",
    "TemplateCache",
]
