# barswax/core/exports.py
"""
Shapes a loaded module or value can take.

Loaders classify whatever a file (or caller) provides once, at load time, into
one of four variants. The reducer and resolver then dispatch on the variant
type instead of probing values themselves.
"""
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union


@dataclass(frozen=True)
class RawValue:
    """A single leaf (scalar, string, helper function); named by the keygen."""
    value: Any


@dataclass(frozen=True)
class Factory:
    """A callable source invoked with (engine, options) to produce a mapping."""
    fn: Callable[..., Any]


@dataclass(frozen=True)
class RegisterHook:
    """A value carrying its own `register(engine, options)` function."""
    fn: Callable[..., Any]


@dataclass(frozen=True)
class Namespace:
    """A mapping of names to values, merged as-is."""
    values: Mapping[str, Any]


Export = Union[RawValue, Factory, RegisterHook, Namespace]


def _register_capability(value: Any):
    if isinstance(value, Mapping):
        candidate = value.get("register")
    else:
        candidate = getattr(value, "register", None)
    return candidate if callable(candidate) else None


def classify_export(value: Any) -> Export:
    """Classifies a value found in a loaded file.

    Callables are leaves here: a helper file exports the helper itself.
    """
    if isinstance(value, (RawValue, Factory, RegisterHook, Namespace)):
        return value
    hook = _register_capability(value)
    if hook is not None:
        return RegisterHook(hook)
    if isinstance(value, Mapping):
        return Namespace(value)
    return RawValue(value)


def classify_source(value: Any) -> Export:
    """Classifies a value handed directly to a registration call.

    Unlike file exports, a bare callable source is a factory.
    """
    if isinstance(value, (RawValue, Factory, RegisterHook, Namespace)):
        return value
    if callable(value) and not isinstance(value, Mapping):
        return Factory(value)
    return classify_export(value)


def is_empty(export: Export) -> bool:
    # falsy leaves (None, 0, "", False) register nothing.
    if isinstance(export, RawValue):
        return not export.value
    if isinstance(export, Namespace):
        return not export.values
    return False
