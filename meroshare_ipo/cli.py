# meroshare_ipo/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Run the IPO automation, check the login, inspect the login page, validate a
selector file, or view the effective (masked) configuration.
Thin wrapper around the engine for local and scheduled runs.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click

from meroshare_ipo import __version__
from meroshare_ipo.core.catalog import SelectorCatalog, load_selector_catalog
from meroshare_ipo.core.errors import ConfigurationError
from meroshare_ipo.utils.config import get_settings
from meroshare_ipo.utils.logger import bound, get_logger, set_log_level


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _write_json(path: str, obj) -> Path:
    outp = Path(path).resolve()
    outp.parent.mkdir(parents=True, exist_ok=True)
    outp.write_text(json.dumps(obj, indent=2, default=str), encoding="utf-8")
    return outp


def _engine(**overrides):
    # local import keeps `config`/`selectors` usable without starting playwright
    from meroshare_ipo.core.engine import Engine

    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)
    return Engine(settings=settings)


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(version=__version__)
def cli(log_level: Optional[str]):
    # Initialize settings + logger once at process start
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars), secrets masked."""
    _echo_json(get_settings().masked_dump())


@cli.command("run")
@click.option("--apply/--no-apply", default=True, show_default=True,
              help="Submit the application when an IPO passes verification")
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
def cmd_run(apply: bool, headless: Optional[bool], json_out: Optional[str]):
    """
    Log in, look for an open IPO, verify its terms and apply.

    Examples:
      meroshare-ipo run
      meroshare-ipo run --no-apply --headed
    """
    log = get_logger(__name__)
    overrides = {} if headless is None else {"HEADLESS": headless}

    try:
        with bound(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")):
            result = _engine(**overrides).run(apply=apply)
    except ConfigurationError as e:
        log.error(str(e))
        click.echo(f"ERR configuration -> {e}")
        sys.exit(2)

    if result.get("ok"):
        click.echo(f"OK  outcome={result.get('outcome')} run_dir={result.get('run_dir', '-')}")
    else:
        reason = result.get("reason") or result.get("error", "unknown error")
        err_type = result.get("error_type")
        step_desc = f" [step {result['failed_step']}]" if result.get("failed_step") else ""
        prefix = f"{err_type}: " if err_type else ""
        click.echo(f"ERR {result.get('outcome', 'error')}{step_desc} -> {prefix}{reason}")

    if json_out:
        click.echo(f"Wrote summary: {_write_json(json_out, result)}")

    sys.exit(0 if result.get("ok") else 1)


@cli.command("check-login")
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
def cmd_check_login(headless: Optional[bool]):
    """Only log in and report whether it worked (no notifications)."""
    overrides = {} if headless is None else {"HEADLESS": headless}
    try:
        result = _engine(**overrides).check_login()
    except ConfigurationError as e:
        click.echo(f"ERR configuration -> {e}")
        sys.exit(2)

    if result.get("ok"):
        click.echo(f"OK  logged in -> {result.get('url')}")
    else:
        click.echo(f"ERR {result.get('reason') or result.get('error', 'login failed')}")
    sys.exit(0 if result.get("ok") else 1)


@cli.command("inspect")
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
def cmd_inspect(headless: Optional[bool]):
    """Dump the login page's inputs, selects and buttons (for refreshing selectors)."""
    overrides = {} if headless is None else {"HEADLESS": headless}
    result = _engine(**overrides).inspect_login_page()
    _echo_json(result)
    sys.exit(0 if result.get("ok") else 1)


@cli.command("selectors")
@click.option("--file", "selectors_file", type=click.Path(dir_okay=False), default=None,
              help="Selector YAML to load (defaults to SELECTORS_FILE, else built-ins)")
@click.option("--validate", is_flag=True, default=False, help="Only validate the file, do not print chains")
def cmd_selectors(selectors_file: Optional[str], validate: bool):
    """Print the effective selector chains, or validate an override file."""
    path = Path(selectors_file) if selectors_file else get_settings().SELECTORS_FILE
    try:
        catalog = load_selector_catalog(path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"ERR {path} -> {e}")
        sys.exit(1)

    if validate:
        overridden = 0
        if path is not None:
            defaults = SelectorCatalog()
            overridden = sum(1 for name in SelectorCatalog.model_fields if getattr(catalog, name) != getattr(defaults, name))
        click.echo(f"OK  {path or '<built-in>'}  ->  {len(SelectorCatalog.model_fields)} chains ({overridden} overridden)")
        return

    _echo_json({name: [c.value for c in getattr(catalog, name)] for name in SelectorCatalog.model_fields})


def main() -> None:
    cli(prog_name="meroshare-ipo")


if __name__ == "__main__":
    main()
