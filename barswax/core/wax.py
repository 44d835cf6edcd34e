# barswax/core/wax.py
"""
The Wax facade: registers partials, helpers, decorators and data with a
Handlebars engine, and compiles templates whose render functions merge a
shared data context into every call.
"""
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union
import structlog

from barswax.config.settings import WaxConfig
from barswax.core.cache import TemplateCache
from barswax.core.discovery import expand_patterns
from barswax.core.engine import HandlebarsEngine
from barswax.core.resolver import is_pattern_source, resolve_value

log = structlog.get_logger(__name__)

# templates reach the shared context through this key, e.g. {{_parent.site}}.
PARENT_KEY = "_parent"

RenderFn = Callable[..., str]


@dataclass(frozen=True)
class RenderResult:
    """Outcome of `Wax.engine`: either rendered output or the error that stopped it."""
    output: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.output


def _with_parent(values: Optional[Mapping[str, Any]], context: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(values or {})
    merged[PARENT_KEY] = context
    return merged


class Wax:
    """Builder over a Handlebars engine.

    Registration calls return the instance so they can be chained::

        wax = Wax().partials("views/partials/**/*.hbs").helpers("helpers/*.py").data({"site": "S"})
        render = wax.compile("{{> header}}{{title}}")
        render({"title": "Home"})
    """

    def __init__(self, engine: Any = None, config: Optional[WaxConfig] = None, **options: Any):
        base_config = config or WaxConfig()
        self.handlebars = engine or base_config.engine or HandlebarsEngine()
        self.config: WaxConfig = base_config.with_overrides(engine=self.handlebars, **options)
        self._context: Dict[str, Any] = {}
        self._cache = TemplateCache(bust=self.config.bust_cache)

    @property
    def context(self) -> Mapping[str, Any]:
        # read-only view; grows through data().
        return MappingProxyType(self._context)

    def _options_for(self, name_option: str, overrides: Mapping[str, Any]) -> WaxConfig:
        options = self.config.with_overrides(**overrides)
        return options.with_overrides(keygen=getattr(options, name_option))

    def partials(self, source: Any, **options: Any) -> "Wax":
        options = self._options_for("parse_partial_name", options)
        engine = options.engine

        if not is_pattern_source(source):
            engine.register_partial(resolve_value(options, source))
            return self

        extensions = {ext.lower() for ext in options.extensions}
        compiled_partials = {}
        for file_path, _base in expand_patterns(source, options.cwd):
            if extensions and file_path.suffix.lower() not in extensions:
                log.debug("partial_skipped_by_extension", path=str(file_path))
                continue
            template_text = file_path.read_text(encoding="utf-8")
            compiled_partials[file_path.name.split(".")[0]] = engine.compile(template_text)
        engine.register_partial(compiled_partials)
        log.info("partials_registered", count=len(compiled_partials))
        return self

    def helpers(self, source: Any, **options: Any) -> "Wax":
        options = self._options_for("parse_helper_name", options)
        helpers = resolve_value(options, source)
        options.engine.register_helper(helpers)
        log.info("helpers_registered", count=len(helpers))
        return self

    def decorators(self, source: Any, **options: Any) -> "Wax":
        options = self._options_for("parse_decorator_name", options)
        decorators = resolve_value(options, source)
        options.engine.register_decorator(decorators)
        log.info("decorators_registered", count=len(decorators))
        return self

    def data(self, source: Any, **options: Any) -> "Wax":
        options = self._options_for("parse_data_name", options)
        values = resolve_value(options, source)
        self._context.update(values)
        log.info("data_merged", keys=sorted(values))
        return self

    def compile(self, template: Union[str, Callable], compile_options: Optional[Mapping[str, Any]] = None) -> RenderFn:
        """Returns `render(data=None, template_options=None)`.

        Each render sees the shared context merged under `data`, and the data
        frames `global` and `local` (`{{@global.site}}`, `{{@local.title}}`),
        all three carrying `_parent`, the shared context itself.

        A callable `template` is treated as precompiled and called as
        `template(context, options)`. Raw pybars programs take helpers and
        partials instead, so bind them first with `wax.handlebars.bind(program)`.
        """
        config = self.config
        context = self._context
        compile_options = {**(config.compile_options or {}), **(compile_options or {})}

        if not callable(template):
            template = self.handlebars.compile(template, compile_options)

        def render(data: Optional[Mapping[str, Any]] = None,
                   template_options: Optional[Mapping[str, Any]] = None) -> str:
            options = {**(config.template_options or {}), **(template_options or {})}
            frames = dict(options.get("data") or {})
            explicit_global = frames.get("global")
            explicit_local = frames.get("local")
            frames["global"] = _with_parent(context if explicit_global is None else explicit_global, context)
            frames["local"] = _with_parent(data if explicit_local is None else explicit_local, context)
            options["data"] = frames

            return template(_with_parent({**context, **(data or {})}, context), options)

        return render

    def engine(self, file_path: Union[str, Path], data: Optional[Mapping[str, Any]] = None) -> RenderResult:
        """Renders the template file at `file_path`; never raises."""
        key = str(file_path)
        path = Path(file_path)
        if not path.is_absolute():
            path = self.config.cwd / path

        try:
            template = self._cache.get(key, lambda: self.compile(path.read_text(encoding="utf-8")))
            return RenderResult(output=template(data))
        except Exception as e:
            log.warning("engine_render_failed", file=key, error=str(e))
            return RenderResult(error=e)

    def render_file(self, file_path: Union[str, Path], data: Optional[Mapping[str, Any]] = None) -> str:
        return self.engine(file_path, data).unwrap()


def create_wax(engine: Any = None, **options: Any) -> Wax:
    return Wax(engine, **options)
