from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple
import structlog

from barswax.core.keygen import keygen_partial, keygen_helper, keygen_decorator
from barswax.exceptions import ConfigError

log = structlog.get_logger(__name__)

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".handlebars", ".hbs", ".html")
DEFAULT_BUST_CACHE = True

# name functions take (options, record) and return the registration key.
NameFn = Callable[["WaxConfig", Any], str]


@dataclass(frozen=True)
class WaxConfig:
    # holds the options recognized by a Wax instance; never mutated after creation.
    engine: Any = None
    cwd: Path = field(default_factory=Path.cwd)
    bust_cache: bool = DEFAULT_BUST_CACHE
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    compile_options: Optional[Mapping[str, Any]] = None
    template_options: Optional[Mapping[str, Any]] = None
    parse_partial_name: Optional[NameFn] = keygen_partial
    parse_helper_name: Optional[NameFn] = keygen_helper
    parse_decorator_name: Optional[NameFn] = keygen_decorator
    parse_data_name: Optional[NameFn] = None
    reducer: Optional[Callable[..., dict]] = None

    # name function for the category being registered; set per call.
    keygen: Optional[NameFn] = None

    def __post_init__(self):
        # normalizes loosely typed values coming from toml or keyword arguments.
        if not isinstance(self.cwd, Path):
            object.__setattr__(self, "cwd", Path(self.cwd))
        if not isinstance(self.extensions, tuple):
            object.__setattr__(self, "extensions", tuple(self.extensions))

    @classmethod
    def option_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def with_overrides(self, **overrides: Any) -> "WaxConfig":
        """Returns a copy with `overrides` applied; the receiver is left untouched."""
        unknown = set(overrides) - set(self.option_names())
        if unknown:
            raise ConfigError(f"unknown option(s): {', '.join(sorted(unknown))}")
        if not overrides:
            return self
        log.debug("config_overrides_applied", keys=sorted(overrides))
        return replace(self, **overrides)
