"""Forge command-line interface.

Usage::

    forge show
    forge set name my-service
    forge set template api
    forge generate --dry-run --container --ci
    forge login
    forge session          # type chords such as ctrl+enter, esc, ctrl+shift+r
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from forge.app import ForgeApp
from forge.backends import BACKEND_KINDS
from forge.commands import SUBMIT, KeyChord
from forge.config import ForgeSettings
from forge.errors import ForgeError
from forge.models import TEMPLATE_CATALOG, FeatureFlag, RunStatus
from forge.utils import (
    console,
    print_error,
    print_log_entry,
    print_success,
    print_summary_table,
    print_warning,
)

QUIT_WORDS = {"q", "quit", "exit"}


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_show(app: ForgeApp, args: argparse.Namespace) -> int:
    config = app.store.config
    user = app.session.user
    print_summary_table(
        {
            "Project name": config.project_name,
            "Destination": config.destination_path,
            "Template": f"{config.template.name} ({config.template_id.value})",
            "Features": ", ".join(f.value for f in config.features.enabled()) or "none",
            "Dry run": "yes" if config.dry_run else "no",
            "Signed in as": user.handle if user else "anonymous",
            "State file": str(app.storage.path),
        },
        title="Forge Configuration",
    )
    return 0


def _cmd_templates(app: ForgeApp, args: argparse.Namespace) -> int:
    table = Table(title="Templates", show_header=True, header_style="bold cyan")
    table.add_column("Id", no_wrap=True)
    table.add_column("Name")
    table.add_column("Stack", style="dim")
    current = app.store.config.template_id
    for template_id, spec in TEMPLATE_CATALOG.items():
        marker = " *" if template_id is current else ""
        table.add_row(f"{template_id.value}{marker}", spec.name, spec.stack)
    console.print(table)
    return 0


def _cmd_set(app: ForgeApp, args: argparse.Namespace) -> int:
    setters = {
        "name": app.store.set_project_name,
        "path": app.store.set_destination_path,
        "template": app.store.set_template,
    }
    setters[args.field](args.value)
    requested = args.value.strip().lower()
    if args.field == "template" and app.store.config.template_id.value != requested:
        print_warning(
            f"Unknown template {args.value!r}; using {app.store.config.template_id.value}."
        )
    return _cmd_show(app, args)


def _cmd_reset(app: ForgeApp, args: argparse.Namespace) -> int:
    if app.router.reset():
        print_success("Configuration reset to defaults.")
    else:
        print_warning("Configuration left unchanged.")
    return 0


def _cmd_generate(app: ForgeApp, args: argparse.Namespace) -> int:
    store = app.store
    if args.dry_run is not None:
        store.set_dry_run(args.dry_run)
    for flag, value in (
        (FeatureFlag.GIT, args.git),
        (FeatureFlag.CONTAINER, args.container),
        (FeatureFlag.CI_WORKFLOW, args.ci),
    ):
        if value is not None:
            store.set_feature(flag, value)

    app.log.subscribe(print_log_entry)
    with console.status("[bold cyan]Synthesizing...[/bold cyan]"):
        ok = asyncio.run(app.orchestrator.submit())
    return 0 if ok else 1


def _cmd_login(app: ForgeApp, args: argparse.Namespace) -> int:
    app.log.subscribe(print_log_entry)
    ok = asyncio.run(app.session.begin_login())
    return 0 if ok else 1


def _cmd_logout(app: ForgeApp, args: argparse.Namespace) -> int:
    was_signed_in = app.session.is_authenticated
    app.session.logout()
    if was_signed_in:
        print_success("Signed out.")
    else:
        print_warning("Already signed out.")
    return 0


def _cmd_session(app: ForgeApp, args: argparse.Namespace) -> int:
    """Interactive loop feeding typed key chords into the router."""
    app.router.confirm = lambda prompt: Confirm.ask(prompt, console=console)
    app.router.close_overlays = lambda: console.print("[dim]Overlays closed.[/dim]")
    app.router.show_help = lambda: _print_bindings(app)
    app.orchestrator.subscribe(
        lambda status: console.print(f"[dim]status: {status.value}[/dim]")
    )
    app.log.subscribe(print_log_entry)

    for entry in app.log.entries():
        print_log_entry(entry)
    _print_bindings(app)
    return asyncio.run(_session_loop(app))


async def _session_loop(app: ForgeApp) -> int:
    pending: set[asyncio.Task[bool]] = set()
    while True:
        text = await asyncio.to_thread(Prompt.ask, "[bold]chord[/bold]", console=console)
        text = text.strip()
        if text.lower() in QUIT_WORDS:
            break
        if not text:
            continue
        try:
            chord = KeyChord.parse(text)
        except ValueError as exc:
            print_error(str(exc))
            continue
        task = app.router.handle(chord)
        if task is not None:
            pending.add(task)
            task.add_done_callback(pending.discard)
        elif chord == SUBMIT and app.orchestrator.status is RunStatus.RUNNING:
            print_warning("A generation is already running.")

    if pending:
        console.print("[dim]Waiting for the running generation to finish...[/dim]")
        await asyncio.gather(*pending)
    return 0


def _print_bindings(app: ForgeApp) -> None:
    lines = [
        "mod+enter      submit the current configuration",
        "escape         close overlays",
        "mod+shift+r    reset the configuration",
        "shift+?        show this help",
        "quit           leave the session",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Key chords[/bold]", border_style="cyan"))


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forge",
        description="Forge -- configure and synthesize project templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  forge set name my-service\n"
            "  forge generate --dry-run --container\n"
            "  forge --backend local generate --ci\n"
        ),
    )
    parser.add_argument("--state", default=None, help="Path of the persisted state file")
    parser.add_argument(
        "--backend",
        choices=BACKEND_KINDS,
        default=None,
        help="Project backend to use (default: FORGE_BACKEND or simulated)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Show the current configuration").set_defaults(func=_cmd_show)
    sub.add_parser("templates", help="List available templates").set_defaults(
        func=_cmd_templates
    )

    set_parser = sub.add_parser("set", help="Change a persisted configuration field")
    set_parser.add_argument("field", choices=["name", "path", "template"])
    set_parser.add_argument("value")
    set_parser.set_defaults(func=_cmd_set)

    reset_parser = sub.add_parser("reset", help="Reset the configuration to defaults")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    reset_parser.set_defaults(func=_cmd_reset)

    gen_parser = sub.add_parser("generate", help="Run a generation")
    gen_parser.add_argument("--dry-run", action=argparse.BooleanOptionalAction, default=None)
    gen_parser.add_argument("--git", action=argparse.BooleanOptionalAction, default=None)
    gen_parser.add_argument("--container", action=argparse.BooleanOptionalAction, default=None)
    gen_parser.add_argument("--ci", action=argparse.BooleanOptionalAction, default=None)
    gen_parser.set_defaults(func=_cmd_generate)

    sub.add_parser("login", help="Sign in with the configured provider").set_defaults(
        func=_cmd_login
    )
    sub.add_parser("logout", help="Sign out").set_defaults(func=_cmd_logout)
    sub.add_parser("session", help="Interactive key-chord session").set_defaults(
        func=_cmd_session
    )
    return parser


def _confirm_for(args: argparse.Namespace):
    if getattr(args, "yes", False):
        return lambda prompt: True
    return lambda prompt: Confirm.ask(prompt, console=console)


def _print_user_code(url: str, code: str) -> None:
    console.print(
        Panel(
            f"Open [bold]{url}[/bold] and enter the code [bold cyan]{code}[/bold cyan]",
            title="[bold]GitHub device login[/bold]",
            border_style="cyan",
        )
    )


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``forge`` / ``python -m forge.cli``."""
    args = build_parser().parse_args(argv)

    try:
        settings = ForgeSettings.from_env()
        updates: dict[str, object] = {}
        if args.state:
            updates["state_path"] = Path(args.state)
        if args.backend:
            updates["backend"] = args.backend
        if updates:
            settings = settings.model_copy(update=updates)

        app = ForgeApp(
            settings,
            confirm=_confirm_for(args),
            on_user_code=_print_user_code,
        )
        code = args.func(app, args)
    except ForgeError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
