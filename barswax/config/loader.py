# barswax/config/loader.py
"""
Handles loading and merging of project configuration from TOML files.
"""
from pathlib import Path
from typing import Any, Dict, Optional
import structlog
import toml

from barswax.exceptions import ConfigError

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".barswax.toml", "barswax.toml", "pyproject.toml"]
USER_CONFIG_DIR = Path.home() / ".config" / "barswax"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.toml"

# keys recognized in config files; source keys take a pattern or list of patterns.
SOURCE_KEYS = ("partials", "helpers", "decorators", "data")
WAX_OPTION_KEYS = ("bust_cache", "extensions", "compile_options", "template_options")
CONFIG_KEYS = SOURCE_KEYS + WAX_OPTION_KEYS + ("output_file",)


def _section(data: Dict[str, Any], file_path: Path) -> Dict[str, Any]:
    return data.get("tool", {}).get("barswax", {}) if file_path.name == "pyproject.toml" else data


def load_config_file(file_path: Path) -> Dict[str, Any]:
    # loads one explicitly requested file; failures are errors.
    try:
        return _section(toml.load(file_path), file_path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file():
        return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        return _section(toml.load(file_path), file_path)
    except (OSError, toml.TomlDecodeError) as e:
        log.error("config_file_load_error", path=str(file_path), error=str(e))
        return {}


def load_and_merge_configs(cwd: Optional[Path] = None) -> Dict[str, Any]:
    # user config first, then the first project config found in cwd.
    cwd = Path(cwd or Path.cwd())
    merged: Dict[str, Any] = {}
    if USER_CONFIG_FILE.is_file():
        log.info("loading_user_global_config", path=str(USER_CONFIG_FILE))
        merged.update(_load_toml_file_data(USER_CONFIG_FILE))

    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = cwd / filename
        if not candidate.is_file():
            continue
        project_settings = _load_toml_file_data(candidate)
        if not project_settings:
            continue
        log.info("loading_project_local_config", path=str(candidate))
        profiles = dict(merged.get("profiles", {}))
        project_profiles = project_settings.pop("profiles", {})
        if isinstance(project_profiles, dict):
            profiles.update(project_profiles)
        merged.update(project_settings)
        if profiles:
            merged["profiles"] = profiles
        break

    if not merged:
        log.debug("no_configuration_files_loaded")
    return merged


def select_profile(raw_config: Dict[str, Any], profile_name: Optional[str] = None) -> Dict[str, Any]:
    """Top-level settings overlaid with the named profile, restricted to known keys."""
    settings = {k: v for k, v in raw_config.items() if k in CONFIG_KEYS}
    if profile_name:
        profile = raw_config.get("profiles", {}).get(profile_name)
        if profile is None:
            raise ConfigError(f"profile '{profile_name}' not found in configuration")
        log.info("applying_profile_settings", profile=profile_name)
        settings.update({k: v for k, v in profile.items() if k in CONFIG_KEYS})

    unknown = set(raw_config) - set(CONFIG_KEYS) - {"profiles"}
    if unknown:
        log.warning("unknown_config_keys_ignored", keys=sorted(unknown))
    return settings


def wax_options_from_settings(settings: Dict[str, Any], cwd: Optional[Path] = None) -> Dict[str, Any]:
    # keyword arguments for Wax / WaxConfig taken from merged settings.
    options: Dict[str, Any] = {k: settings[k] for k in WAX_OPTION_KEYS if k in settings}
    if "extensions" in options:
        if isinstance(options["extensions"], str):
            options["extensions"] = [options["extensions"]]
        options["extensions"] = tuple(options["extensions"])
    if cwd is not None:
        options["cwd"] = Path(cwd)
    return options
