# barswax/core/keygen.py
"""
Derives registration names from file paths.

A partial keeps its directory structure (`nested/header`), while helpers and
decorators are flattened into a single identifier (`nested-header`).
"""
import posixpath
import re
from pathlib import Path
from typing import Any

PATH_SEPARATOR = "/"
PATH_SEPARATORS = re.compile(r"[\\/]")
WHITESPACE_CHARACTERS = re.compile(r"\s+")
NON_WORD_CHARACTERS = re.compile(r"\W+", re.ASCII)
WORD_SEPARATOR = "-"


def _normalize(path: Path) -> str:
    # resolves symlinks (raising if the path is missing) and unifies separators.
    return PATH_SEPARATORS.sub(PATH_SEPARATOR, str(Path(path).resolve(strict=True)))


def keygen_partial(options: Any, record: Any) -> str:
    """Name relative to the record's base directory, extension stripped.

    `options` is accepted so the function can be swapped for any name function
    configured on a WaxConfig; it is not consulted here.
    """
    full_path = _normalize(record.path)
    base_path = _normalize(record.base).rstrip(PATH_SEPARATOR) + PATH_SEPARATOR
    short_path = re.sub("^" + re.escape(base_path), "", full_path, count=1, flags=re.IGNORECASE)
    extension = posixpath.splitext(short_path)[1]
    if extension:
        short_path = short_path[: len(short_path) - len(extension)]
    return WHITESPACE_CHARACTERS.sub(WORD_SEPARATOR, short_path)


def keygen_helper(options: Any, record: Any) -> str:
    return NON_WORD_CHARACTERS.sub(WORD_SEPARATOR, keygen_partial(options, record))


def keygen_decorator(options: Any, record: Any) -> str:
    return keygen_helper(options, record)
