#!/usr/bin/env python3
"""
CLI for inspecting and maintaining Crease Scorer matches
"""
import json
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import track

from app.auth import create_access_token
from app.config import settings
from app.database import init_db, SessionLocal
from app.engine import MatchEngine
from app.storage import SqlMatchRepository

console = Console()


def _repository() -> SqlMatchRepository:
    return SqlMatchRepository(
        SessionLocal,
        code_length=settings.MATCH_CODE_LENGTH,
        cache_ttl_seconds=settings.MATCH_CACHE_TTL_SECONDS,
    )


@click.group()
def cli():
    """Crease Scorer - Cricket Match Scoring"""
    pass


@cli.command()
def init():
    """Initialize the database"""
    console.print("[yellow]Initializing database...[/yellow]")
    init_db()
    console.print("[green]Database initialized successfully![/green]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def replay(file: str):
    """Rebuild a match from a JSON document by replaying its deliveries"""
    with open(file) as f:
        document = json.load(f)

    engine = MatchEngine.load(document)
    _print_match(engine)


@cli.command()
@click.argument("code")
def show(code: str):
    """Print the scorecards of a stored match"""
    document = _repository().get_by_code(code)
    if document is None:
        console.print(f"[red]No match with code {code.upper()}[/red]")
        raise SystemExit(1)

    _print_match(MatchEngine.load(document))


@cli.command()
@click.option("--minutes", default=settings.ABANDON_AFTER_MINUTES, help="Inactivity before a match is abandoned")
def sweep(minutes: int):
    """Abandon stored matches with no activity for too long"""
    repository = _repository()
    documents = repository.list_active()
    now = datetime.utcnow()

    abandoned = []
    for document in track(documents, description="Checking matches..."):
        engine = MatchEngine.load(document, repository)
        if engine.abandon_if_inactive(now=now, timeout_minutes=minutes):
            abandoned.append(engine.match)

    console.print(f"[cyan]Checked:[/cyan] {len(documents)}")
    console.print(f"[cyan]Abandoned:[/cyan] {len(abandoned)}")
    for match in abandoned:
        console.print(f"  {match.code}  {' vs '.join(t.name for t in match.teams)}")


@cli.command()
@click.argument("user_id")
def token(user_id: str):
    """Print an access token for local testing"""
    console.print(create_access_token(user_id))


def _print_match(engine: MatchEngine):
    match = engine.match
    names = " vs ".join(t.name for t in match.teams)
    console.print(Panel(f"[bold]{names}[/bold]  ({match.code or 'unsaved'})"))

    for innings in match.innings:
        batting = match.team(innings.batting_team_id)
        header = f"{batting.name}: {innings.total_runs}/{innings.total_wickets} ({innings.overs_display} overs)"
        if innings.target is not None:
            header += f" - target {innings.target}"
        console.print(f"\n[bold]Innings {innings.number}[/bold] {header}")
        _print_scorecard(engine, innings.number)
        console.print(f"Extras: {innings.extras}")

    if match.abandoned:
        console.print("\n[bold red]Match abandoned[/bold red]")
    elif match.winner:
        margin = f" by {match.win_margin}" if match.win_margin else ""
        console.print(f"\n[bold green]Winner: {match.winner}{margin}[/bold green]")
    else:
        console.print(f"\n[yellow]Status: {match.status.value}[/yellow]")


def _print_scorecard(engine: MatchEngine, innings_number: int):
    """Print innings scorecard"""
    match = engine.match

    # Batting
    bat_table = Table(title="Batting")
    bat_table.add_column("Batter", style="cyan")
    bat_table.add_column("Dismissal")
    bat_table.add_column("R", justify="right")
    bat_table.add_column("B", justify="right")
    bat_table.add_column("4s", justify="right")
    bat_table.add_column("6s", justify="right")
    bat_table.add_column("SR", justify="right")

    for stats in engine.batting_stats(innings_number):
        dismissal = stats.dismissal_type if stats.is_out else "not out"
        bat_table.add_row(
            match.player_name(stats.player_id),
            dismissal,
            str(stats.runs),
            str(stats.balls),
            str(stats.fours),
            str(stats.sixes),
            f"{stats.strike_rate:.1f}",
        )

    console.print(bat_table)

    # Bowling
    bowl_table = Table(title="Bowling")
    bowl_table.add_column("Bowler", style="magenta")
    bowl_table.add_column("O", justify="right")
    bowl_table.add_column("M", justify="right")
    bowl_table.add_column("R", justify="right")
    bowl_table.add_column("W", justify="right")
    bowl_table.add_column("Econ", justify="right")

    for stats in engine.bowling_stats(innings_number):
        bowl_table.add_row(
            match.player_name(stats.player_id),
            stats.overs_display,
            str(stats.maidens),
            str(stats.runs),
            str(stats.wickets),
            f"{stats.economy:.1f}",
        )

    console.print(bowl_table)


if __name__ == "__main__":
    cli()
