"""View - the rendering context that compiled templates run against.

Inside compiled code `self` is the View and `ctx` is a Context holding the
template variables. Helpers reachable from templates are listed in
`viewc.compiler.helpers.Helper`.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import ItemsView
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Iterable, Mapping, Optional

from markupsafe import Markup, escape
from rich.pretty import pretty_repr

from viewc.config import CompilerSettings, ViewSettings
from viewc.exceptions import RenderError, TemplateNotFoundError
from viewc.renderer import Renderer
from viewc.template import TemplateCompiler

log = logging.getLogger(__name__)

FLASHES_KEY = "_flashes"
COMPONENTS_DIR = "components"

UrlFor = Callable[..., str]


class Context(SimpleNamespace):
    """Template variables; names that were never set read as None."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return None


class AppGlobal:
    """The `app` accessor object: request-scoped globals for templates."""

    def __init__(self, view: "View", user: Any = None, request: Any = None):
        self._view = view
        self.user = user
        self.request = request

    @property
    def session(self) -> dict:
        return self._view.session

    @property
    def flashes(self) -> dict[str, list[str]]:
        return self._view.get_flashes()

    @property
    def debug(self) -> bool:
        return self._view.settings.debug

    @property
    def environment(self) -> str:
        return self._view.settings.environment


class View:
    """Resolves, compiles and renders templates, and serves their helpers."""

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        settings: Optional[ViewSettings] = None,
        compiler_settings: Optional[CompilerSettings] = None,
        url_for: Optional[UrlFor] = None,
        session: Optional[dict] = None,
        csrf_token: Optional[Callable[[], str]] = None,
        user: Any = None,
        request: Any = None,
    ):
        self.settings = settings or ViewSettings()
        self.templates_dir = Path(templates_dir or self.settings.templates_dir)
        self.compiler = TemplateCompiler(
            compiler_settings, self.settings.cache_dir, self.settings.auto_reload
        )
        self.renderer = Renderer()
        self.url_for = url_for
        self.session = session if session is not None else {}
        self.csrf_provider = csrf_token
        self.app = AppGlobal(self, user=user, request=request)

        self._layout: Optional[str] = None
        self._sections: dict[str, str] = {}
        self._section_names: list[str] = []
        self._buffers: list[list[str]] = []

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self, template: str, **params: Any) -> str:
        """Render a template, then the layouts it extends.

        Raises:
            TemplateNotFoundError: When the template or a layout is missing.
            RenderError: When compiled code fails to build or run.
        """
        self._layout = None
        self._sections = {}
        ctx = Context(**params)

        content = self._render_file(self._resolve(template), ctx)
        while self._layout is not None:
            layout, self._layout = self._layout, None
            self._sections.setdefault("content", content)
            content = self._render_file(self._resolve(layout), ctx)
        return content

    def render_string(self, text: str, **params: Any) -> str:
        """Compile and render template text that does not live in a file."""
        compiled = self.compiler.compile_string(text)
        return self._run(compiled, Context(**params), "<string>")

    def _render_file(self, path: Path, ctx: Context) -> str:
        compiled_path = self.compiler.compile(path)
        compiled = compiled_path.read_text(encoding="utf-8")
        return self._run(compiled, ctx, str(path))

    def _run(self, compiled: str, ctx: Context, name: str) -> str:
        return self.renderer.render(compiled, self, ctx, name)

    def _resolve(self, template: str) -> Path:
        path = self.find_template(template)
        if path is None:
            raise TemplateNotFoundError(template)
        return path

    def find_template(self, template: str) -> Optional[Path]:
        base = self.templates_dir / template.lstrip("/")
        if base.is_file():
            return base
        for extension in self.settings.extensions:
            candidate = base.with_name(base.name + extension)
            if candidate.is_file():
                return candidate
        return None

    # Output buffers used by render functions

    def write(self, text: str) -> None:
        self._buffers[-1].append(text)

    def push_buffer(self) -> None:
        self._buffers.append([])

    def pop_buffer(self) -> str:
        return "".join(self._buffers.pop())

    # =========================================================================
    # Layouts, sections and components
    # =========================================================================

    def extend(self, layout: str) -> None:
        self._layout = layout

    def start(self, name: str) -> None:
        self._section_names.append(name)
        self.push_buffer()

    def end(self) -> None:
        if not self._section_names:
            raise RenderError("<section>", "end() without a matching start()")
        name = self._section_names.pop()
        self._sections[name] = self.pop_buffer()

    def section(self, name: str) -> Markup:
        return Markup(self._sections.get(name, ""))

    def block(self, name: str, default: str = "") -> Markup:
        return Markup(self._sections.get(name, default))

    def component(self, name: str, props: Optional[Mapping[str, Any]] = None) -> Markup:
        """Render `components/<name>` (or `<name>`) with only `props` in scope."""
        path = self.find_template(f"{COMPONENTS_DIR}/{name}") or self.find_template(name)
        if path is None:
            log.warning("Component %r not found", name)
            return Markup(f"<!-- Component '{escape(name)}' not found -->")

        # Layout state belongs to the page, not to the component
        layout, sections = self._layout, dict(self._sections)
        try:
            return Markup(self._render_file(path, Context(**dict(props or {}))))
        finally:
            self._layout, self._sections = layout, sections

    # =========================================================================
    # Escaping and filters
    # =========================================================================

    def e(self, value: Any) -> Markup:
        if value is None:
            return Markup("")
        return escape(value)

    def escape(self, value: Any) -> Markup:
        return self.e(value)

    def to_str(self, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    def pairs(self, value: Any) -> Iterable[tuple[Any, Any]]:
        """Key/value pairs of a mapping, or index/item pairs of a sequence."""
        if value is None:
            return []
        if isinstance(value, Mapping):
            return value.items()
        if isinstance(value, ItemsView):
            return value
        return enumerate(value)

    def json(self, value: Any) -> Markup:
        return Markup(json.dumps(value, default=str))

    def nl2br(self, value: Any) -> Markup:
        return Markup("<br />\n").join(self.e(value).split("\n"))

    def default(self, value: Any, fallback: Any = "") -> Any:
        if value is None or value == "":
            return fallback
        return value

    def join(self, value: Any, separator: str = ", ") -> str:
        if value is None:
            return ""
        return separator.join(self.to_str(item) for item in value)

    def dump(self, *values: Any) -> Markup:
        return Markup("").join(
            Markup("<pre class=\"viewc-dump\">{}</pre>").format(pretty_repr(value))
            for value in values
        )

    # =========================================================================
    # URLs and assets
    # =========================================================================

    def asset(self, path: str) -> str:
        return self.settings.asset_base.rstrip("/") + "/" + path.lstrip("/")

    def url(self, path: str = "") -> str:
        return "/" + path.lstrip("/")

    def route(self, name: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> str:
        if self.url_for is None:
            log.warning("No url_for configured, cannot build route %r", name)
            return "#"
        return self.url_for(name, **{**dict(params or {}), **kwargs})

    def path(self, name: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> str:
        return self.route(name, params, **kwargs)

    def has_route(self, name: str) -> bool:
        if self.url_for is None:
            return False
        try:
            self.url_for(name)
        except (LookupError, ValueError):
            return False
        return True

    def css(self, path: str, **attributes: Any) -> Markup:
        return Markup('<link rel="stylesheet" href="{}"{}>').format(
            self.asset(path), _attributes(attributes)
        )

    def js(self, path: str, **attributes: Any) -> Markup:
        return Markup('<script src="{}"{}></script>').format(
            self.asset(path), _attributes(attributes)
        )

    # =========================================================================
    # Session, flashes and CSRF
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        return self.session.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.session[key] = value

    def has(self, key: str) -> bool:
        return key in self.session

    def flash(self, key: str, message: str) -> None:
        self.session.setdefault(FLASHES_KEY, {}).setdefault(key, []).append(message)

    def has_flash(self, key: str) -> bool:
        return bool(self.session.get(FLASHES_KEY, {}).get(key))

    def get_flash(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """First message flashed under `key`; reading clears the key."""
        messages = self.session.get(FLASHES_KEY, {}).pop(key, [])
        return messages[0] if messages else default

    def get_flashes(self) -> dict[str, list[str]]:
        """All flashed messages by key; reading clears them."""
        return self.session.pop(FLASHES_KEY, {})

    def csrf_token(self) -> str:
        if self.csrf_provider is not None:
            return self.csrf_provider()
        token = self.session.get(self.settings.csrf_field)
        if token is None:
            token = secrets.token_hex(32)
            self.session[self.settings.csrf_field] = token
        return token

    def csrf_input(self) -> Markup:
        return Markup('<input type="hidden" name="{}" value="{}">').format(
            self.settings.csrf_field, self.csrf_token()
        )


def _attributes(attributes: Mapping[str, Any]) -> Markup:
    return Markup("").join(
        Markup(' {}="{}"').format(name.replace("_", "-"), value)
        for name, value in attributes.items()
    )
