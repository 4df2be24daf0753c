"""CLI for LoreSense.

Debugging aid for card authors. Every command loads a JSON entity file and
builds a fresh snapshot from it.

Commands:
    resolve <file> <token>     - Resolve a mention (with optional context)
    sheet <file> <entity-id>   - Show the effective sheet at a story progress
    conflicts <file>           - List identity conflicts and build warnings
    complete <file> <prefix>   - Prefix completion over names and aliases
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from lore_sense import __version__
from lore_sense.loader import load_entities
from lore_sense.models import Ambiguous, Context, Identity, NoActivePhase, NotFound
from lore_sense.resolution import Disambiguator, IndexSnapshot, build_snapshot

app = typer.Typer(
    name="lore-sense",
    help="LoreSense — keyword resolution and character-state engine",
    no_args_is_help=True,
)
console = Console()

EntityFile = Annotated[
    Path,
    typer.Argument(help="JSON file with entity records", exists=True, dir_okay=False),
]


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show engine log output")
    ] = False,
):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_snapshot(path: Path) -> IndexSnapshot:
    try:
        entities = load_entities(path)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid entity data in {path}:\n{e}")
        raise typer.Exit(1) from None
    except ValueError as e:
        console.print(f"[red]Error:[/red] Could not parse {path}: {e}")
        raise typer.Exit(1) from None
    return build_snapshot(entities)


def _parse_pairs(pairs: list[str], option: str) -> dict[str, float]:
    result: dict[str, float] = {}
    for pair in pairs:
        target, sep, value = pair.rpartition("=")
        try:
            if not sep or not target:
                raise ValueError(pair)
            result[target] = float(value)
        except ValueError:
            console.print(f"[red]Error:[/red] {option} expects TARGET=NUMBER, got {pair!r}")
            raise typer.Exit(1) from None
    return result


@app.command()
def resolve(
    path: EntityFile,
    token: Annotated[str, typer.Argument(help="Mention to resolve")],
    context: Annotated[
        list[str] | None,
        typer.Option("--context", "-c", help="Surrounding token (repeatable)"),
    ] = None,
    namespace: Annotated[
        str | None, typer.Option("--namespace", help="Active namespace hint")
    ] = None,
    faction: Annotated[str | None, typer.Option("--faction", help="Active faction hint")] = None,
    show_scores: Annotated[
        bool, typer.Option("--scores", help="Show every scored candidate")
    ] = False,
):
    """Resolve a mention to an identity."""
    snapshot = _load_snapshot(path)
    ctx = Context.of(context or (), namespace=namespace, faction=faction)
    disambiguator = Disambiguator()
    result = disambiguator.resolve(token, ctx, snapshot)

    if isinstance(result, Identity):
        console.print(f"[green]Resolved:[/green] {result.id}")
    elif isinstance(result, Ambiguous):
        console.print(f"[yellow]Ambiguous:[/yellow] {len(result.candidates)} candidates tie")
        for candidate in result.candidates:
            console.print(f"  • {candidate.identity.id} ({candidate.match_kind.value})")
    else:
        best = "-" if result.best_score is None else f"{result.best_score:.2f}"
        console.print(f"[red]Not found:[/red] {result.reason} (best score {best})")

    if show_scores:
        table = Table(title=f"Candidates for {token!r}")
        table.add_column("Identity")
        table.add_column("Kind")
        table.add_column("Key")
        table.add_column("Raw", justify="right")
        table.add_column("Context")
        table.add_column("Score", justify="right")
        for c in disambiguator.score_candidates(token, ctx, snapshot):
            table.add_row(
                c.identity.id,
                c.match_kind.value,
                c.matched_key,
                f"{c.raw_score:.2f}",
                "yes" if c.context_matched else "",
                f"{c.score:.2f}",
            )
        console.print(table)

    if isinstance(result, NotFound):
        raise typer.Exit(1)


@app.command()
def sheet(
    path: EntityFile,
    entity_id: Annotated[str, typer.Argument(help="Identity id or namespace")],
    progress: Annotated[float, typer.Option("--progress", "-p", help="Story progress")] = 0.0,
    relationship: Annotated[
        list[str] | None,
        typer.Option("--rel", help="Accumulated relationship TARGET=STRENGTH (repeatable)"),
    ] = None,
    scene: Annotated[str | None, typer.Option("--scene", help="Current scene")] = None,
    flag: Annotated[
        list[str] | None, typer.Option("--flag", help="Flag set to true (repeatable)")
    ] = None,
):
    """Show an entity's effective sheet at a story progress."""
    snapshot = _load_snapshot(path)
    result = snapshot.effective_sheet(
        entity_id,
        progress,
        _parse_pairs(relationship or [], "--rel"),
        current_scene=scene,
        flags={name: True for name in flag or []},
    )

    if isinstance(result, NotFound):
        console.print(f"[red]Error:[/red] Unknown entity: {entity_id}")
        raise typer.Exit(1)
    if isinstance(result, NoActivePhase):
        console.print(
            f"[red]Error:[/red] No active or default phase for {result.entity_id} "
            f"at progress {result.story_progress}"
        )
        raise typer.Exit(1)

    lines = [
        f"[bold]Entity:[/bold] {result.entity_id}",
        f"[bold]Phase:[/bold] {result.phase_id}" + (" (default)" if result.is_default else ""),
        f"[bold]Faction:[/bold] {result.faction or '-'}",
        f"[bold]Abilities:[/bold] {', '.join(result.abilities) or '-'}",
    ]
    if result.relationships:
        lines.append("[bold]Relationships:[/bold]")
        for target, rel in result.relationships.items():
            lines.append(f"  • {rel.name or target}: {rel.type} ({rel.strength:+.2f})")
    if result.forbidden_knowledge:
        lines.append("[bold]Forbidden knowledge:[/bold]")
        for item in result.forbidden_knowledge:
            lines.append(f"  • {item}")
    console.print(Panel("\n".join(lines), title=f"Sheet @ {progress:g}"))


@app.command()
def conflicts(path: EntityFile):
    """List identity conflicts and build warnings."""
    snapshot = _load_snapshot(path)

    if not snapshot.conflicts and not snapshot.warnings:
        console.print("[green]No conflicts or warnings.[/green]")
        return

    if snapshot.conflicts:
        table = Table(title="Identity conflicts")
        table.add_column("Display name")
        table.add_column("Identity A")
        table.add_column("Identity B")
        for conflict in snapshot.conflicts:
            table.add_row(conflict.display_name, conflict.identity_a_id, conflict.identity_b_id)
        console.print(table)

    if snapshot.warnings:
        table = Table(title="Build warnings")
        table.add_column("Kind")
        table.add_column("Namespace")
        table.add_column("Message")
        for warning in snapshot.warnings:
            table.add_row(warning.kind.value, warning.namespace, warning.message)
        console.print(table)


@app.command()
def complete(
    path: EntityFile,
    prefix: Annotated[str, typer.Argument(help="Partial name or alias")],
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum results")] = 10,
):
    """Complete a partial name against indexed names and aliases."""
    snapshot = _load_snapshot(path)
    keys = snapshot.index.complete(prefix, limit=limit)
    if not keys:
        console.print(f"[yellow]No keys start with {prefix!r}[/yellow]")
        raise typer.Exit(1)
    for key in keys:
        console.print(key)


@app.command()
def version():
    """Show the LoreSense version."""
    console.print(f"lore-sense {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
