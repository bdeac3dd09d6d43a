"""CLI entry point for ability-engine.

Invoked as::

    ability-engine [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m ability_engine.cli.main

Commands
--------
- check        Evaluate one action/subject pair against a rule file
- permissions  Show the grant/deny summary of a rule file
- keys         Show unauthorized message keys for an action/subject pair
- version      Show version information
"""
from __future__ import annotations

import json
import sys

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ability_engine.ability import Ability
from ability_engine.errors import ConfigurationError
from ability_engine.loader import RuleSetLoader

console = Console()
err_console = Console(stderr=True)


def _parse_attributes(pairs: tuple[str, ...]) -> dict[str, object]:
    """Parse ``key=value`` pairs; values are decoded as JSON when possible."""
    attributes: dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}.", param_hint="--attr")
        try:
            attributes[key] = json.loads(value)
        except json.JSONDecodeError:
            attributes[key] = value
    return attributes


def _build_subject(name: str, attributes: dict[str, object]) -> object:
    """Return the tag ``name``, or an instance of a class named ``name``."""
    if not attributes:
        return name
    subject_type = type(name, (), {})
    subject = subject_type()
    for key, value in attributes.items():
        setattr(subject, key, value)
    return subject


def _load(rules_file: str) -> Ability:
    try:
        return RuleSetLoader().load(rules_file)
    except ConfigurationError as exc:
        err_console.print(f"[red]Invalid rule set:[/red] {exc}")
        sys.exit(2)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="ability-engine")
def cli() -> None:
    """Ability Engine CLI: inspect and check authorization rule files."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from ability_engine import __version__

    console.print(
        Panel(
            f"[bold]ability-engine[/bold]  v[cyan]{__version__}[/cyan]\n"
            "In-process authorization rules for Python applications.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--action", "-a", required=True, help="Action to check, e.g. 'update'.")
@click.option("--subject", "-s", required=True, help="Subject tag or class name, e.g. 'Article'.")
@click.option(
    "--attr",
    "attrs",
    multiple=True,
    help="Subject attribute as key=value (JSON values accepted). Repeatable.",
)
def check_command(rules_file: str, action: str, subject: str, attrs: tuple[str, ...]) -> None:
    """Check whether ACTION is allowed on SUBJECT under RULES_FILE."""
    ability = _load(rules_file)
    attributes = _parse_attributes(attrs)
    target = _build_subject(subject, attributes)

    try:
        rule = ability.governing_rule(action, target)
    except ConfigurationError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(2)

    allowed = rule is not None and rule.polarity
    status_str = "[green]ALLOWED[/green]" if allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Ability Check Result", border_style="blue"))
    console.print(f"  Action: [cyan]{action}[/cyan]  Subject: [cyan]{subject}[/cyan]")
    if attributes:
        console.print(f"  Attributes: {attributes}")
    if rule is not None:
        console.print(f"  Governing rule: [bold]{rule!r}[/bold]")
    else:
        console.print("  No rule matched; denied by default.")

    sys.exit(0 if allowed else 1)


# ---------------------------------------------------------------------------
# permissions
# ---------------------------------------------------------------------------


@cli.command(name="permissions")
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON.")
def permissions_command(rules_file: str, as_json: bool) -> None:
    """Show the granted and denied subjects per action in RULES_FILE."""
    summary = _load(rules_file).permissions()

    if as_json:
        click.echo(json.dumps(summary, indent=2, sort_keys=True))
        return

    table = Table(title="Permissions", box=box.SIMPLE)
    table.add_column("Behavior", style="magenta")
    table.add_column("Action", style="cyan")
    table.add_column("Subjects")
    for behavior in ("grant", "deny"):
        for action, subjects in summary[behavior].items():
            table.add_row(behavior, action, ", ".join(subjects))
    console.print(table)


# ---------------------------------------------------------------------------
# keys
# ---------------------------------------------------------------------------


@cli.command(name="keys")
@click.option("--action", "-a", required=True, help="Action that was denied.")
@click.option("--subject", "-s", required=True, help="Subject tag that was denied.")
@click.option(
    "--rules",
    "rules_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Rule file whose aliases are used. Defaults to the built-in aliases.",
)
def keys_command(action: str, subject: str, rules_file: str | None) -> None:
    """List unauthorized message keys, most specific first."""
    ability = _load(rules_file) if rules_file else Ability()
    for key in ability.unauthorized_message_keys(action, subject):
        click.echo(key)


if __name__ == "__main__":
    cli()
