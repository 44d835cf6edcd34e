# barswax/core/discovery.py
"""
Expands glob patterns into the files they match.

Each match is reported together with its base directory, the pattern's glob
parent (`helpers/**/*.py` -> `helpers`), which is what registration names are
made relative to. Patterns starting with `!` exclude files matched by earlier
patterns. Hidden files and directories are skipped.
"""
import os
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union
import pathspec
import structlog

from barswax.exceptions import DiscoveryError

log = structlog.get_logger(__name__)

GLOB_MAGIC = re.compile(r"[*?\[\]]")
NEGATION_PREFIX = "!"
GLOBSTAR = "**"

Patterns = Union[str, Iterable[str]]


def normalize_patterns(patterns: Optional[Patterns]) -> List[str]:
    # accepts a single pattern or any iterable of patterns.
    if not patterns:
        return []
    if isinstance(patterns, (str, os.PathLike)):
        patterns = [patterns]
    return [str(p).replace("\\", "/") for p in patterns if str(p).strip()]


def glob_parent(pattern: str) -> str:
    # longest leading run of path segments free of glob characters.
    parts = pattern.split("/")
    parent: List[str] = []
    for part in parts[:-1]:
        if GLOB_MAGIC.search(part):
            break
        parent.append(part)
    if parent == [""]:
        return "/"
    return "/".join(parent) or "."


class GlobMatcher:
    """Matches relative posix paths against a glob, one path segment at a time.

    `**` spans any number of directories; every other segment matches exactly
    one path segment, so `data/*` does not reach into `data/sub/`.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.segments: List[Optional[pathspec.PathSpec]] = [
            None if segment == GLOBSTAR else pathspec.PathSpec.from_lines("gitwildmatch", ["/" + segment])
            for segment in pattern.split("/") if segment
        ]

    @property
    def max_depth(self) -> Optional[int]:
        # directory levels worth descending into, or None when `**` is present.
        if any(segment is None for segment in self.segments):
            return None
        return len(self.segments) - 1

    def match_file(self, relative_path: str) -> bool:
        return self._match(0, relative_path.split("/"))

    def _match(self, index: int, parts: List[str]) -> bool:
        if index == len(self.segments):
            return not parts
        segment = self.segments[index]
        if segment is None:
            return any(self._match(index + 1, parts[skip:]) for skip in range(len(parts) + 1))
        return bool(parts) and segment.match_file(parts[0]) and self._match(index + 1, parts[1:])


def compile_pattern(pattern: str, cwd: Path) -> Tuple[Path, GlobMatcher]:
    # splits a pattern into its base directory and a matcher anchored at that base.
    parent = glob_parent(pattern)
    remainder = pattern[len(parent):].lstrip("/") if parent not in (".",) else pattern
    if remainder.startswith("./"):
        remainder = remainder[2:]
    base_dir = (cwd / parent).resolve() if not Path(parent).is_absolute() else Path(parent).resolve()
    try:
        matcher = GlobMatcher(remainder)
    except Exception as e:
        raise DiscoveryError(f"error compiling glob pattern {pattern!r}: {e}") from e
    return base_dir, matcher


def _is_hidden(relative_path: Path) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in relative_path.parts)


def _walk_matches(base_dir: Path, matcher: GlobMatcher) -> Iterator[Path]:
    # yields matching files under base_dir in a stable, sorted order.
    max_depth = matcher.max_depth
    for root, dirs, files in os.walk(str(base_dir), topdown=True):
        depth = len(Path(root).relative_to(base_dir).parts)
        if max_depth is not None and depth >= max_depth:
            dirs[:] = []
        else:
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for file_name in sorted(files):
            file_path = Path(root, file_name)
            rel_path = file_path.relative_to(base_dir)
            if _is_hidden(rel_path):
                continue
            if matcher.match_file(rel_path.as_posix()):
                yield file_path


def _is_excluded(file_path: Path, exclusions: List[Tuple[Path, GlobMatcher]]) -> bool:
    for base_dir, matcher in exclusions:
        try:
            rel_path = file_path.relative_to(base_dir)
        except ValueError:
            continue
        if matcher.match_file(rel_path.as_posix()):
            return True
    return False


def expand_patterns(patterns: Optional[Patterns], cwd: Optional[Path] = None) -> List[Tuple[Path, Path]]:
    """Returns `(file_path, base_dir)` pairs, both absolute, in match order.

    A file matched by several patterns is reported once, at its first position.
    """
    cwd = Path(cwd or Path.cwd()).resolve()
    pattern_list = normalize_patterns(patterns)
    exclusions = [
        compile_pattern(p[len(NEGATION_PREFIX):], cwd)
        for p in pattern_list if p.startswith(NEGATION_PREFIX)
    ]

    matches: List[Tuple[Path, Path]] = []
    seen: Set[Path] = set()
    for pattern in pattern_list:
        if pattern.startswith(NEGATION_PREFIX):
            continue
        base_dir, matcher = compile_pattern(pattern, cwd)
        if not base_dir.is_dir():
            log.debug("glob_base_missing", pattern=pattern, base_dir=str(base_dir))
            continue
        for file_path in _walk_matches(base_dir, matcher):
            if file_path in seen or _is_excluded(file_path, exclusions):
                continue
            seen.add(file_path)
            matches.append((file_path, base_dir))

    log.debug("glob_patterns_expanded", patterns=pattern_list, matches=len(matches))
    return matches
