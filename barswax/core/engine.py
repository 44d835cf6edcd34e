# barswax/core/engine.py
"""
Handlebars engine adapter over pybars.

pybars compiles templates into plain render functions and takes helpers and
partials at render time. HandlebarsEngine keeps registries for both (plus
decorators, which pybars has no notion of) and binds them into every template
it compiles, giving the compile/register surface Wax works against.
"""
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
import pybars  # type: ignore
from pybars._compiler import _pybars_  # type: ignore
import structlog

from barswax.exceptions import TemplateError

log = structlog.get_logger(__name__)

DATA_PREFIX = "@"
# each, with, if, unless and friends; pybars merges these under user helpers.
BUILTIN_HELPERS = _pybars_["helpers"]


def _frame_values(data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return {DATA_PREFIX + name: value for name, value in (data or {}).items()}


def _with_data_frames(context: Any, frames: Mapping[str, Any]) -> Any:
    # pybars resolves `@name` paths against the root context.
    if not frames or not isinstance(context, Mapping):
        return context
    return {**context, **frames}


def _is_block_options(value: Any) -> bool:
    return isinstance(value, dict) and "fn" in value and "root" in value


def _frame_scope(context: Any, frames: Mapping[str, Any], root: Any) -> pybars.Scope:
    # block bodies get a new scope; keep the frames visible as scope overrides.
    if isinstance(context, pybars.Scope):
        return pybars.Scope(
            context.context, context.parent, context.root,
            overrides={**(context.overrides or {}), **frames},
            index=context.index, key=context.key, first=context.first, last=context.last,
        )
    return pybars.Scope(context, context, root, overrides=dict(frames))


def _carry_frames(helper: Callable, frames: Mapping[str, Any]) -> Callable:
    """Wraps a helper so the blocks it renders still see the data frames."""
    def block_helper(this, *args, **kwargs):
        if args and _is_block_options(args[0]):
            options = dict(args[0])
            root = options.get("root")
            for key in ("fn", "inverse"):
                body = options.get(key)
                if callable(body):
                    options[key] = lambda context, body=body: body(_frame_scope(context, frames, root))
            args = (options,) + args[1:]
        return helper(this, *args, **kwargs)
    return block_helper


class CompiledTemplate:
    """A pybars program bound to the registries of the engine that compiled it.

    Call it as `template(context, options)`; `options` may carry `helpers`,
    `partials` (both merged over the engine's) and `data` (exposed as `@name`).
    """

    def __init__(self, engine: "HandlebarsEngine", program: Callable, decorators: Iterable[Callable] = (),
                 compile_options: Optional[Mapping[str, Any]] = None):
        self.engine = engine
        self.program = program
        render = self._render
        for decorator in decorators:
            render = decorator(render, compile_options or {})
        self._entry = render

    def _render(self, context: Any = None, options: Optional[Mapping[str, Any]] = None) -> str:
        options = options or {}
        frames = _frame_values(options.get("data"))
        helpers = {**BUILTIN_HELPERS, **self.engine.helpers, **(options.get("helpers") or {})}
        if frames:
            helpers = {name: _carry_frames(helper, frames) if callable(helper) else helper
                       for name, helper in helpers.items()}
        partials = dict(self.engine.partials)
        for name, partial in (options.get("partials") or {}).items():
            partials[name] = self.engine.as_partial(partial)
        render_context = _with_data_frames(context if context is not None else {}, frames)
        try:
            return str(self.program(render_context, helpers=helpers, partials=partials))
        except TemplateError:
            raise
        except Exception as e:
            log.error("template_render_failed", error=str(e))
            raise TemplateError(f"template render failed: {e}") from e

    def __call__(self, context: Any = None, options: Optional[Mapping[str, Any]] = None) -> str:
        return self._entry(context, options)


class HandlebarsEngine:
    """Registries plus a pybars compiler."""

    def __init__(self, compiler: Optional[pybars.Compiler] = None):
        self.compiler = compiler or pybars.Compiler()
        self.helpers: Dict[str, Callable] = {}
        self.partials: Dict[str, Callable] = {}
        self.decorators: Dict[str, Callable] = {}

    def _compile_program(self, source: str) -> Callable:
        try:
            return self.compiler.compile(source)
        except Exception as e:
            log.error("template_compilation_failed", error=str(e))
            raise TemplateError(f"failed to compile template: {e}") from e

    def compile(self, source: str, options: Optional[Mapping[str, Any]] = None) -> CompiledTemplate:
        return self.bind(self._compile_program(source), options)

    def bind(self, program: Callable, options: Optional[Mapping[str, Any]] = None) -> CompiledTemplate:
        """Binds an already compiled pybars program to this engine's registries.

        The result takes `(context, options)` like any template from `compile`.
        """
        options = dict(options or {})
        decorator_names = options.get("decorators") or ()
        if isinstance(decorator_names, str):
            decorator_names = [decorator_names]
        missing = [name for name in decorator_names if name not in self.decorators]
        if missing:
            raise TemplateError(f"unknown decorator(s): {', '.join(missing)}")

        decorators = [self.decorators[name] for name in decorator_names]
        log.debug("template_compiled", decorators=list(decorator_names))
        return CompiledTemplate(self, program, decorators, options)

    def as_partial(self, partial: Any) -> Callable:
        # pybars calls partials with its own signature, so keep raw programs.
        if isinstance(partial, CompiledTemplate):
            return partial.program
        if isinstance(partial, str):
            return self._compile_program(partial)
        return partial

    @staticmethod
    def _registrations(name_or_map: Any, value: Any) -> Mapping[str, Any]:
        if isinstance(name_or_map, Mapping):
            return name_or_map
        return {name_or_map: value}

    def register_helper(self, name_or_map: Any, helper: Optional[Callable] = None) -> None:
        helpers = self._registrations(name_or_map, helper)
        self.helpers.update(helpers)
        log.debug("helpers_registered", names=sorted(helpers))

    def register_partial(self, name_or_map: Any, partial: Any = None) -> None:
        partials = self._registrations(name_or_map, partial)
        for name, value in partials.items():
            self.partials[name] = self.as_partial(value)
        log.debug("partials_registered", names=sorted(partials))

    def register_decorator(self, name_or_map: Any, decorator: Optional[Callable] = None) -> None:
        decorators = self._registrations(name_or_map, decorator)
        self.decorators.update(decorators)
        log.debug("decorators_registered", names=sorted(decorators))
