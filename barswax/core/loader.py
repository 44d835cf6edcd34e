# barswax/core/loader.py
"""
Loads the files matched by glob patterns into typed records.

How a file's exports are read depends on its suffix:

- `.py`: the module is executed. A callable `register` makes the module a
  register hook; an `exports` attribute is used as the value; otherwise the
  module's public names form a namespace.
- `.json` / `.toml`: parsed; mappings become namespaces, anything else a leaf.
- anything else: the file's text is a leaf value.

Modules are executed afresh on every load, so edits are always picked up.
"""
import hashlib
import importlib.util
import inspect
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Iterator, Optional
import structlog
import toml

from barswax.core.discovery import Patterns, expand_patterns
from barswax.core.exports import Export, Namespace, RegisterHook, classify_export
from barswax.exceptions import LoadError

log = structlog.get_logger(__name__)

MODULE_NAME_PREFIX = "_barswax_loaded_"


@dataclass(frozen=True)
class FileRecord:
    # one discovered source file and what it exports.
    path: Path
    base: Path
    exports: Export


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    return f"{MODULE_NAME_PREFIX}{path.stem.replace('-', '_')}_{digest}"


def _public_members(module: ModuleType) -> dict:
    names = getattr(module, "__all__", None)
    if names is not None:
        return {name: getattr(module, name) for name in names}

    members = {}
    for name, value in vars(module).items():
        if name.startswith("_") or inspect.ismodule(value):
            continue
        # skip functions and classes imported from elsewhere.
        if (inspect.isfunction(value) or inspect.isclass(value)) and value.__module__ != module.__name__:
            continue
        members[name] = value
    return members


def module_exports(module: ModuleType) -> Export:
    register = getattr(module, "register", None)
    if callable(register):
        return RegisterHook(register)
    if hasattr(module, "exports"):
        return classify_export(module.exports)
    return Namespace(_public_members(module))


def load_python_module(path: Path) -> ModuleType:
    module_name = _module_name_for(path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise LoadError(f"could not load python module from {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except OSError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise LoadError(f"failed to execute module {path}: {e}") from e
    log.debug("python_module_loaded", path=str(path), module=module_name)
    return module


def load_exports(path: Path) -> Export:
    """Reads `path` and classifies its exports. I/O errors propagate unchanged."""
    suffix = path.suffix.lower()
    if suffix == ".py":
        return module_exports(load_python_module(path))

    text = path.read_text(encoding="utf-8")
    if suffix == ".json":
        try:
            return classify_export(json.loads(text))
        except ValueError as e:
            raise LoadError(f"invalid json in {path}: {e}") from e
    if suffix == ".toml":
        try:
            return classify_export(toml.loads(text))
        except toml.TomlDecodeError as e:
            raise LoadError(f"invalid toml in {path}: {e}") from e
    return classify_export(text)


def load_file(path: Path, base: Path) -> FileRecord:
    return FileRecord(path=Path(path), base=Path(base), exports=load_exports(Path(path)))


def load_records(patterns: Patterns, cwd: Optional[Path] = None) -> Iterator[FileRecord]:
    # expands patterns and loads every match, in expansion order.
    for file_path, base_dir in expand_patterns(patterns, cwd):
        yield load_file(file_path, base_dir)


def synthetic_record(value: Any, cwd: Optional[Path] = None) -> FileRecord:
    # wraps an in-memory value so it can go through the same reducer as files.
    base = Path(cwd or Path.cwd())
    return FileRecord(path=base, base=base, exports=classify_export(value))
