"""Template compilation and caching — pure logic, no I/O.

User-authored title/filter templates are Jinja2 sources evaluated in a
sandbox.  Two names are bound at render time:

- ``Activity`` — the playing :class:`~titlecore.models.Track`
- ``Context``  — the :class:`~titlecore.models.UpdaterContext` render clock
"""

from __future__ import annotations

from typing import Dict, List

from jinja2 import ChainableUndefined, Template, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment


class TemplateParseError(Exception):
    """Raised when a template source does not compile."""

    def __init__(self, messages: List[str]):
        self.messages = messages
        super().__init__(f"Template parsing failed: {', '.join(messages)}")


def create_environment() -> SandboxedEnvironment:
    """Sandboxed Jinja2 environment used for every user template."""
    return SandboxedEnvironment(undefined=ChainableUndefined, autoescape=False)


def parse_template(env: SandboxedEnvironment, source: str) -> Template:
    """Compile *source*, translating syntax errors into ``TemplateParseError``."""
    try:
        return env.from_string(source)
    except TemplateSyntaxError as exc:
        raise TemplateParseError([f"line {exc.lineno}: {exc.message}"]) from exc


class TemplateCache:
    """Compiled templates keyed by their exact source text.

    Unbounded: the number of distinct sources equals the number of
    user-authored configs.  Not thread-safe; callers serialise access.
    """

    def __init__(self, env: SandboxedEnvironment | None = None):
        self._env = env or create_environment()
        self._cache: Dict[str, Template] = {}
        self.hits = 0
        self.misses = 0

    @property
    def cached_template_count(self) -> int:
        return len(self._cache)

    @property
    def hit_rate(self) -> float:
        """Hit percentage (0–100)."""
        total = self.hits + self.misses
        return self.hits / total * 100 if total else 0.0

    def get_or_compile(self, source: str) -> Template:
        """Return the compiled template for *source*.

        Raises ``TemplateParseError`` (not cached) when parsing fails.
        """
        template = self._cache.get(source)
        if template is not None:
            self.hits += 1
            return template

        self.misses += 1
        template = parse_template(self._env, source)
        self._cache[source] = template
        return template

    def clear(self) -> None:
        self._cache.clear()
        self.hits = 0
        self.misses = 0
