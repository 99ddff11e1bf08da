"""
Command-Line Interface for MonthDSS.

Purpose
-------
Runs the three decision engines on JSON payload files and prints the
results, without writing Python code.

Commands
--------
- allocate: Split one month of income into candidate scenarios
- debts: Compare debt payoff strategies and recommend one
- goals: Rank savings goals from direct or derived ratings
- score: Derive goal ratings from goal facts
- config: Validate payload files or create starter templates
- info: Show version and dependency information

Example Usage
-------------
    # Allocate income with all three scenarios
    $ monthdss allocate -i budget.json --all-scenarios

    # Compare strategies with an extra 200,000 per month
    $ monthdss debts -i debts.json --extra 200000 -o out/debts.json

    # Create and validate a goals payload
    $ monthdss config create goals.json --kind goals
    $ monthdss config validate goals.json --kind goals

    # Rank goals, scoring the unrated ones as of a fixed date
    $ monthdss goals -i goals.json --auto --as-of 2025-01-01

Logging
-------
Verbosity comes from AppSettings (MONTHDSS_LOG_LEVEL, MONTHDSS_DEBUG or
a .env file); records are rendered on stderr by rich.
"""

from __future__ import annotations

import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import click

from . import __version__
from .config import AppSettings
from .exceptions import DSSError

KINDS = ("budget", "debt", "goals")
STRATEGIES = ("avalanche", "snowball", "hybrid", "cash_flow", "stress")


def _get_console():
    """Lazy import Rich for better startup time."""
    from rich.console import Console
    return Console()


def _configure_logging(level: str) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.captureWarnings(True)


def _with_options(payload: Dict[str, Any], defaults: Dict[str, Any], **overrides) -> Dict[str, Any]:
    """Return *payload* with CLI overrides (and settings defaults) merged into ``options``."""
    options = payload.get("options") or {}
    if not isinstance(options, dict):
        return payload
    options = dict(options)
    for key, value in defaults.items():
        options.setdefault(key, value)
    options.update({k: v for k, v in overrides.items() if v is not None})
    return {**payload, "options": options}


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _money(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:,.0f}"


def _print_warnings(console, warnings) -> None:
    from rich.markup import escape

    colors = {"low": "dim", "medium": "yellow", "high": "red"}
    for w in warnings:
        target = escape(f" [{w.entity_id}]") if w.entity_id else ""
        console.print(
            f"  [{colors[w.severity]}]{w.severity.upper()}[/] {w.type}{target}: {escape(w.message)}"
        )


@click.group()
@click.version_option(version=__version__, prog_name="monthdss")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.pass_context
def main(ctx: click.Context, quiet: bool) -> None:
    """
    MonthDSS - Monthly Personal-Finance Decision Support.

    Allocates income across expenses, debts and goals, compares debt
    payoff strategies and ranks savings goals.

    Use 'monthdss COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    _configure_logging(settings.effective_log_level)
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = _get_console()


# ---------------------------------------------------------------------------
# allocate
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--input", "-i", "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Budget payload (JSON)"
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the result as JSON"
)
@click.option("--all-scenarios", is_flag=True,
              help="Conservative, balanced and aggressive scenarios")
@click.option("--sensitivity", is_flag=True,
              help="Run income sensitivity analysis")
@click.pass_context
def allocate(
    ctx: click.Context,
    input_file: Path,
    output: Optional[Path],
    all_scenarios: bool,
    sensitivity: bool,
) -> None:
    """
    Allocate one month of income.

    Example:
        monthdss allocate -i budget.json --all-scenarios --sensitivity
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    from .serialization import load_payload, save_result
    from .service import allocate_budget_from_input

    try:
        payload = _with_options(
            load_payload(input_file), {},
            use_all_scenarios=all_scenarios or None,
            run_sensitivity=sensitivity or None,
        )
        result = allocate_budget_from_input(payload)
    except DSSError as e:
        _fail(str(e))

    if quiet:
        for s in result.scenarios:
            click.echo(f"{s.name}: leftover {s.leftover:,.2f} feasible={s.is_feasible}")
    else:
        from rich.table import Table

        status = "[green]feasible[/green]" if result.is_feasible else "[red]infeasible[/red]"
        console.print(f"[bold]Income {result.income:,.0f}[/bold] ({status})")
        for s in result.scenarios:
            table = Table(title=f"Scenario: {s.name}", show_header=True)
            table.add_column("Kind", style="cyan")
            table.add_column("Item")
            table.add_column("Amount", style="green", justify="right")
            table.add_column("Range", justify="right")
            for a in s.allocations:
                bounds = "" if a.kind != "flexible" else f"{_money(a.minimum)}-{_money(a.maximum)}"
                table.add_row(a.kind, a.name, _money(a.amount), bounds)
            table.add_row("", "", "", "")
            table.add_row("leftover", "", _money(s.leftover), "")
            if s.extra_debt_payment > 0:
                table.add_row("extra debt", "", _money(s.extra_debt_payment), "")
            table.add_row("savings rate", "", f"{s.savings_rate:.1%}", "")
            console.print(table)
            _print_warnings(console, s.warnings)

        if result.global_warnings:
            console.print("[bold]Warnings[/bold]")
            _print_warnings(console, result.global_warnings)

        if result.sensitivity is not None:
            table = Table(title="Income Sensitivity", show_header=True)
            table.add_column("Change", style="cyan", justify="right")
            table.add_column("Income", justify="right")
            table.add_column("Leftover", justify="right")
            table.add_column("Feasible")
            for p in result.sensitivity.points:
                table.add_row(f"{p.income_change_percent:+.0f}%", _money(p.income),
                              _money(p.leftover), "Yes" if p.is_feasible else "No")
            console.print(table)
            console.print(
                f"Break-even income: {_money(result.sensitivity.income_break_even_point)}"
            )

    if output:
        save_result(result, output)
        if not quiet:
            click.echo(f"Result saved to {output}")


# ---------------------------------------------------------------------------
# debts
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--input", "-i", "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Debt payload (JSON)"
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the result as JSON"
)
@click.option("--strategy", type=click.Choice(STRATEGIES), default=None,
              help="Preferred strategy to recommend")
@click.option("--budget", type=float, default=None, help="Total monthly debt budget")
@click.option("--extra", type=float, default=None, help="Extra payment on top of minimums")
@click.option("--horizon", type=int, default=None, help="Maximum simulated months")
@click.option("--timelines", is_flag=True, help="Include every strategy's timeline in the output")
@click.pass_context
def debts(
    ctx: click.Context,
    input_file: Path,
    output: Optional[Path],
    strategy: Optional[str],
    budget: Optional[float],
    extra: Optional[float],
    horizon: Optional[int],
    timelines: bool,
) -> None:
    """
    Compare debt payoff strategies.

    Example:
        monthdss debts -i debts.json --extra 200000 --strategy snowball
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]
    settings = ctx.obj["settings"]

    from .serialization import load_payload, save_result
    from .service import simulate_debt_strategy_from_input

    try:
        payload = _with_options(
            load_payload(input_file),
            {"maximum_horizon": settings.maximum_horizon},
            preferred_strategy=strategy,
            total_debt_budget=budget,
            extra_payment=extra,
            maximum_horizon=horizon,
        )
        result = simulate_debt_strategy_from_input(payload)
    except DSSError as e:
        _fail(str(e))

    if quiet:
        months = result.months_to_debt_free
        click.echo(f"Recommended: {result.recommended_strategy.value}")
        click.echo(f"Months to debt-free: {months if months is not None else 'never'}")
        click.echo(f"Total interest: {result.total_interest:,.2f}")
    else:
        from rich.table import Table

        table = Table(title=f"Strategies (budget {result.total_debt_budget:,.0f}/month)",
                      show_header=True)
        table.add_column("Strategy", style="cyan")
        table.add_column("Months", justify="right")
        table.add_column("Interest", justify="right")
        table.add_column("Saved", style="green", justify="right")
        table.add_column("First cleared", justify="right")
        for o in result.strategy_comparison:
            marker = " *" if o.strategy is result.recommended_strategy else ""
            table.add_row(
                f"{o.strategy.value}{marker}",
                "never" if o.truncated else str(o.months_to_debt_free),
                _money(o.total_interest),
                _money(o.interest_saved),
                "-" if o.first_debt_cleared is None else str(o.first_debt_cleared),
            )
        console.print(table)

        plans = Table(title=f"Payoff plan: {result.recommended_strategy.value}", show_header=True)
        plans.add_column("Debt", style="cyan")
        plans.add_column("Paid off", justify="right")
        plans.add_column("Interest", justify="right")
        plans.add_column("Total paid", justify="right")
        for p in result.payoff_plans:
            plans.add_row(
                p.name,
                "never" if p.payoff_month is None else f"month {p.payoff_month}",
                _money(p.total_interest),
                _money(p.total_paid),
            )
        console.print(plans)
        _print_warnings(console, result.warnings)

    if output:
        save_result(result, output, include_timelines=timelines)
        if not quiet:
            click.echo(f"Result saved to {output}")


# ---------------------------------------------------------------------------
# goals
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--input", "-i", "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Goals and ratings payload (JSON)"
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the result as JSON"
)
@click.option("--auto", "auto_score", is_flag=True,
              help="Derive ratings for goals that have none")
@click.option("--as-of", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Reference date for target dates (default: today)")
@click.pass_context
def goals(
    ctx: click.Context,
    input_file: Path,
    output: Optional[Path],
    auto_score: bool,
    as_of: Optional[datetime],
) -> None:
    """
    Rank savings goals from direct ratings.

    Example:
        monthdss goals -i goals.json
        monthdss goals -i goals.json --auto --as-of 2025-01-01
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]
    settings = ctx.obj["settings"]

    from .serialization import load_payload, save_result
    from .service import prioritize_goals_from_input

    defaults = {"consistency_threshold": settings.consistency_threshold}
    if auto_score:
        defaults["as_of"] = date.today().isoformat()
    try:
        payload = _with_options(
            load_payload(input_file),
            defaults,
            use_auto_scoring=True if auto_score else None,
            as_of=as_of.date().isoformat() if as_of else None,
        )
        result = prioritize_goals_from_input(payload)
    except DSSError as e:
        _fail(str(e))

    if quiet:
        for g in result.ranked_goals:
            click.echo(f"{g.rank}. {g.goal_id} {g.composite_score:.3f}")
    else:
        from rich.table import Table

        table = Table(title="Goal Ranking", show_header=True)
        table.add_column("#", justify="right")
        table.add_column("Goal", style="cyan")
        table.add_column("Priority")
        table.add_column("Score", style="green", justify="right")
        table.add_column("Share", justify="right")
        table.add_column("CV", justify="right")
        for g in result.ranked_goals:
            flag = " [yellow](low confidence)[/yellow]" if g.low_confidence else ""
            if g.auto_scored:
                flag += " [dim](auto)[/dim]"
            table.add_row(str(g.rank), f"{g.name}{flag}", g.priority,
                          f"{g.composite_score:.3f}",
                          f"{result.alternative_priorities[g.goal_id]:.1%}",
                          f"{g.coefficient_of_variation:.2f}")
        console.print(table)
        verdict = "consistent" if result.is_consistent else "inconsistent"
        console.print(f"Consistency ratio: {result.consistency_ratio:.3f} ({verdict})")

    if output:
        save_result(result, output)
        if not quiet:
            click.echo(f"Result saved to {output}")


# ---------------------------------------------------------------------------
# score
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--input", "-i", "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Goals payload (JSON); ratings are ignored"
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the scores as JSON"
)
@click.option("--as-of", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Reference date for target dates (default: today)")
@click.pass_context
def score(
    ctx: click.Context,
    input_file: Path,
    output: Optional[Path],
    as_of: Optional[datetime],
) -> None:
    """
    Derive goal ratings from goal type, priority, target date and amount.

    Example:
        monthdss score -i goals.json --as-of 2025-01-01
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    from .serialization import load_payload, save_result
    from .service import auto_score_goals_from_input

    try:
        payload = _with_options(
            load_payload(input_file),
            {"as_of": date.today().isoformat()},
            as_of=as_of.date().isoformat() if as_of else None,
        )
        result = auto_score_goals_from_input(payload)
    except DSSError as e:
        _fail(str(e))

    axes = ("urgency", "importance", "roi", "effort")
    if quiet:
        for g in result.goals:
            values = " ".join(f"{g.scores[axis].score:g}" for axis in axes)
            click.echo(f"{g.goal_id} {values}")
    else:
        from rich.markup import escape
        from rich.table import Table

        table = Table(title="Goal Auto-Scores", show_header=True)
        table.add_column("Goal", style="cyan")
        table.add_column("Type")
        for axis in axes:
            table.add_column(axis.capitalize(), justify="right")
        for g in result.goals:
            table.add_row(g.name, g.goal_type, *(f"{g.scores[axis].score:g}" for axis in axes))
        console.print(table)
        for g in result.goals:
            console.print(f"[cyan]{escape(g.name)}[/cyan]")
            for axis in axes:
                console.print(f"  {axis}: {escape(g.scores[axis].reason)}")

    if output:
        save_result(result, output)
        if not quiet:
            click.echo(f"Result saved to {output}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@main.group()
def config() -> None:
    """
    Payload file management commands.

    Validate payload files and create starter templates.
    """
    pass


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--kind", "-k", type=click.Choice(KINDS), required=True, help="Payload kind")
@click.pass_context
def config_validate(ctx: click.Context, config_file: Path, kind: str) -> None:
    """
    Validate a payload file.

    Checks that the file is valid JSON, matches the payload schema and
    that every record passes range and cross-record checks.

    Example:
        monthdss config validate budget.json --kind budget
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    from .normalize import normalize_budget_input, normalize_debt_input, normalize_rating_input
    from .serialization import load_payload

    normalizers = {
        "budget": normalize_budget_input,
        "debt": normalize_debt_input,
        "goals": normalize_rating_input,
    }
    try:
        context, _ = normalizers[kind](load_payload(config_file))
    except DSSError as e:
        _fail(f"Payload validation failed: {e}")

    if quiet:
        click.echo("Payload is valid")
        return

    from rich.panel import Panel

    lines = [f"[bold]{kind.capitalize()} payload valid[/bold]", ""]
    if context.income is not None:
        lines.append(f"[cyan]Income:[/cyan] {context.income:,.0f}")
    lines += [
        f"[cyan]Mandatory expenses:[/cyan] {len(context.mandatory_expenses)}"
        f" ({context.mandatory_total:,.0f})",
        f"[cyan]Flexible expenses:[/cyan] {len(context.flexible_expenses)}"
        f" (min {context.flexible_min_total:,.0f})",
        f"[cyan]Debts:[/cyan] {len(context.debts)} (minimums {context.debt_minimum_total:,.0f})",
        f"[cyan]Goals:[/cyan] {len(context.goals)}",
        f"[cyan]Ratings:[/cyan] {len(context.ratings)}",
    ]
    console.print(Panel("\n".join(lines), title="Payload Summary", border_style="green"))


@config.command("create")
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--kind", "-k", type=click.Choice(KINDS), required=True, help="Payload kind")
@click.pass_context
def config_create(ctx: click.Context, output_file: Path, kind: str) -> None:
    """
    Create a starter payload file.

    Example:
        monthdss config create budget.json --kind budget
    """
    console = ctx.obj["console"]
    quiet = ctx.obj["quiet"]

    from .serialization import save_payload, template_payload

    save_payload(template_payload(kind), output_file)

    if not quiet:
        console.print(f"[green]Created {kind} payload: {output_file}[/green]")


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Display package and dependency information.

    Shows version numbers, installed dependencies and the active
    settings.
    """
    console = ctx.obj["console"]
    settings = ctx.obj["settings"]

    from importlib.metadata import PackageNotFoundError, version

    from .serialization import SCHEMA_VERSION

    info_lines = [
        f"MonthDSS Version: {__version__}",
        f"Payload schema: {SCHEMA_VERSION}",
        f"Python: {sys.version.split()[0]}",
    ]

    for name in ("numpy", "pandas", "pydantic", "pydantic-settings", "click", "rich"):
        try:
            info_lines.append(f"{name}: {version(name)}")
        except PackageNotFoundError:
            info_lines.append(f"{name}: not installed")

    info_lines += [
        "",
        f"Log level: {settings.effective_log_level}",
        f"Default horizon: {settings.maximum_horizon} months",
        f"Consistency threshold: {settings.consistency_threshold}",
    ]

    from rich.panel import Panel
    console.print(Panel("\n".join(info_lines), title="System Information"))


if __name__ == "__main__":
    main()
