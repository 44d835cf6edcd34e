# barswax/cli/interface.py
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from click_option_group import optgroup
import structlog

from barswax import __version__ as app_version
from barswax.cli.console_output import print_registrations
from barswax.config.loader import (
    SOURCE_KEYS, load_and_merge_configs, load_config_file, select_profile, wax_options_from_settings,
)
from barswax.core.output import deliver
from barswax.core.wax import Wax
from barswax.exceptions import BarsWaxError
from barswax.logging_setup import configure_logging

log = structlog.get_logger(__name__)


def _source_options(cmd):
    """Applies the registration source and configuration options shared by subcommands."""
    decorators = [
        optgroup.group("Registration Sources", help="Glob patterns for files to register."),
        optgroup.option("-p", "--partials", "partials", multiple=True, metavar="PATTERN", help="Partial template files."),
        optgroup.option("-H", "--helpers", "helpers", multiple=True, metavar="PATTERN", help="Helper modules."),
        optgroup.option("-D", "--decorators", "decorators", multiple=True, metavar="PATTERN", help="Decorator modules."),
        optgroup.option("-d", "--data", "data", multiple=True, metavar="PATTERN", help="Data files (.py, .json, .toml) merged into the shared context."),
        optgroup.group("Configuration", help="Where settings come from."),
        optgroup.option("-C", "--cwd", "cwd", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None, help="Base directory for patterns and templates. Default: current directory."),
        optgroup.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="Read settings from this TOML file instead of discovering one."),
        optgroup.option("--config-profile", "config_profile", default=None, help="Apply a [profiles.NAME] table from the config file."),
        optgroup.option("--bust-cache/--no-bust-cache", "bust_cache", default=None, help="Recompile templates on every render."),
    ]
    for decorator in reversed(decorators):
        cmd = decorator(cmd)
    return cmd


def _resolve_settings(params: Dict[str, Any]) -> Tuple[Dict[str, Any], Path]:
    # layers config file, profile and command line options.
    cwd = (params.get("cwd") or Path.cwd()).resolve()
    if params.get("config_file"):
        raw_config = load_config_file(params["config_file"])
    else:
        raw_config = load_and_merge_configs(cwd)
    settings = select_profile(raw_config, params.get("config_profile"))

    for key in SOURCE_KEYS:
        if params.get(key):
            settings[key] = list(params[key])
    if params.get("bust_cache") is not None:
        settings["bust_cache"] = params["bust_cache"]
    log.debug("effective_settings_resolved", settings=settings)
    return settings, cwd


def build_wax(settings: Dict[str, Any], cwd: Path) -> Wax:
    wax = Wax(**wax_options_from_settings(settings, cwd))
    if settings.get("partials"):
        wax.partials(settings["partials"])
    if settings.get("helpers"):
        wax.helpers(settings["helpers"])
    if settings.get("decorators"):
        wax.decorators(settings["decorators"])
    if settings.get("data"):
        wax.data(settings["data"])
    return wax


def _parse_vars(raw_vars: Tuple[str, ...]) -> Dict[str, str]:
    user_vars: Dict[str, str] = {}
    for item in raw_vars:
        if "=" not in item:
            raise click.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint="--var")
        key, value = item.split("=", 1)
        user_vars[key.strip()] = value
    return user_vars


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("Application Behavior", help="Logging and diagnostics.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--force-json-logs", "force_json_logs_cli", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, package_name="barswax", prog_name="barswax", help="Show version and exit.")
def main_cli_group(verbosity_level: int, force_json_logs_cli: bool):
    """barswax: render Handlebars templates with directories of partials,
    helpers, decorators and data wired in."""
    log_level = "warning"
    if verbosity_level == 1: log_level = "info"
    elif verbosity_level >= 2: log_level = "debug"
    configure_logging(log_level_str=log_level, force_json_logs=force_json_logs_cli)


@main_cli_group.command("render")
@click.argument("template", type=click.Path(path_type=Path))
@_source_options
@optgroup.group("Output", help="Render data and destination.")
@optgroup.option("--var", "user_vars", multiple=True, metavar="KEY=VALUE", help="Per-render data passed to the template.")
@optgroup.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, writable=True, path_type=Path), default=None, help="Write the rendered output to this file.")
def render_command(template: Path, user_vars: Tuple[str, ...], output_file: Optional[Path], **params: Any):
    """Render TEMPLATE (relative to --cwd) with the configured registrations."""
    data = _parse_vars(user_vars)
    try:
        settings, cwd = _resolve_settings(params)
        wax = build_wax(settings, cwd)
        destination = output_file or settings.get("output_file")
        deliver(wax.engine(template, data), Path(destination) if destination else None)
        if destination:
            click.echo(f"Info: Output written to: {destination}", err=True)
    except (BarsWaxError, OSError) as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@main_cli_group.command("inspect")
@_source_options
def inspect_command(**params: Any):
    """List what the configured sources register."""
    try:
        settings, cwd = _resolve_settings(params)
        wax = build_wax(settings, cwd)
    except (BarsWaxError, OSError) as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    print_registrations(wax)
