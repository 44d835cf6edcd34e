from typing import Callable, Dict, TypeVar
import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class TemplateCache:
    # memoizes compiled templates by exact path string; `bust` disables reuse.
    def __init__(self, bust: bool = True):
        self.bust = bust
        self._entries: Dict[str, Callable] = {}

    def get(self, key: str, factory: Callable[[], T]) -> T:
        entry = self._entries.get(key)
        if entry is None or self.bust:
            log.debug("template_cache_fill", key=key, busted=self.bust and entry is not None)
            entry = factory()
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
