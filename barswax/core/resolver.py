# barswax/core/resolver.py
"""
Turns registration sources into flat name -> value mappings.

A source may be a glob pattern (or list of patterns), a mapping, a factory
function, a module, or anything carrying a `register(engine, options)` hook.
Each file or value is folded into one accumulator by the reducer; when two
entries produce the same name the later one wins.
"""
import inspect
import os
from typing import Any, Dict, Iterable, Mapping
import structlog

from barswax.config.settings import WaxConfig
from barswax.core.exports import (
    Factory, Namespace, RawValue, RegisterHook, classify_source, is_empty,
)
from barswax.core.loader import FileRecord, load_records, module_exports, synthetic_record

log = structlog.get_logger(__name__)


def _merge(accumulator: Dict[str, Any], values: Mapping[str, Any], record: FileRecord) -> Dict[str, Any]:
    for name, value in values.items():
        if name in accumulator:
            log.debug("registration_overwritten", name=name, source=str(record.path))
        accumulator[name] = value
    return accumulator


def _call_for_mapping(fn, options: WaxConfig):
    # factories and register hooks return a mapping, or register things themselves.
    result = fn(options.engine, options)
    return result if isinstance(result, Mapping) else None


def reduce_record(options: WaxConfig, accumulator: Dict[str, Any], record: FileRecord) -> Dict[str, Any]:
    """Folds one record into `accumulator` and returns it."""
    exports = record.exports
    if exports is None or is_empty(exports):
        return accumulator

    if isinstance(exports, (RegisterHook, Factory)):
        values = _call_for_mapping(exports.fn, options)
        if values is None:
            log.debug("register_hook_self_registered", source=str(record.path))
            return accumulator
        return _merge(accumulator, values, record)

    if isinstance(exports, Namespace):
        return _merge(accumulator, exports.values, record)

    if options.keygen is None:
        log.warning("leaf_value_skipped_without_name_function", source=str(record.path))
        return accumulator
    name = options.keygen(options, record)
    return _merge(accumulator, {name: exports.value}, record)


def is_pattern_source(source: Any) -> bool:
    if isinstance(source, (str, os.PathLike)):
        return True
    if isinstance(source, Iterable) and not isinstance(source, Mapping):
        return all(isinstance(item, (str, os.PathLike)) for item in source)
    return False


def resolve_value(options: WaxConfig, source: Any) -> Dict[str, Any]:
    """Resolves any supported source shape into a flat mapping."""
    if not source:
        return {}

    reducer = options.reducer or reduce_record

    if inspect.ismodule(source):
        record = synthetic_record(module_exports(source), options.cwd)
        return reducer(options, {}, record)

    exports = classify_source(source)
    if isinstance(exports, Factory):
        values = _call_for_mapping(exports.fn, options)
        return values if values is not None else {}

    if isinstance(exports, (Namespace, RegisterHook)):
        return reducer(options, {}, synthetic_record(exports, options.cwd))

    if isinstance(exports, RawValue) and is_pattern_source(source):
        if not isinstance(source, (str, os.PathLike)):
            source = list(source)
        accumulator: Dict[str, Any] = {}
        for record in load_records(source, options.cwd):
            accumulator = reducer(options, accumulator, record)
        log.debug("source_resolved", patterns=source, names=sorted(accumulator))
        return accumulator

    log.warning("unsupported_source_shape_ignored", source_type=type(source).__name__)
    return {}
