"""Command-line interface for Strava FTP Coach."""

import json
import logging
from datetime import datetime, timezone

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .config import config
from .auth import AuthManager, RefreshFailedError
from .api import StravaAPIError
from .analysis import CatalogExhaustedError, InvalidPlanInputError, WorkoutCatalog, calculate_tss
from .coach import WeeklyCoach
from .db import close_db, get_db
from .db.models import Activity, Workout
from .db.repository import ActivityStore
from .weeks import format_week_range, get_week_label, get_week_start

console = Console()

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def parse_durations(value: str):
    """Parse '60,0,90,0,45,0,120' into a list of minutes per day."""
    try:
        durations = [int(part.strip()) for part in value.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter("durations must be comma-separated minutes, e.g. 60,0,90,0,45,0,120")
    if len(durations) > 7:
        raise click.BadParameter("at most 7 days per week")
    return durations + [0] * (7 - len(durations))


def parse_week(value):
    if value is None:
        return get_week_start()
    try:
        return get_week_start(datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc))
    except ValueError:
        raise click.BadParameter("week must be a date in YYYY-MM-DD format")


def handle_strava_error(error: Exception) -> None:
    if isinstance(error, RefreshFailedError):
        console.print(f"[red]❌ {error}. Please run 'strava-ftp-coach auth' to reconnect.[/red]")
    else:
        console.print(f"[red]❌ Strava error: {error}[/red]")


@click.group()
@click.option("--user", default="default", help="User id for stored data")
@click.pass_context
def cli(ctx, user):
    """Strava FTP Coach: training load, FTP estimation and weekly planning."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["user"] = user


@cli.command()
@click.pass_context
def auth(ctx):
    """Authenticate with Strava."""
    console.print(Panel.fit("🔐 Strava Authentication", style="bold blue"))

    try:
        config.validate()
    except ValueError as e:
        console.print(f"[red]❌ Configuration Error: {e}[/red]")
        console.print("\n[yellow]Please create a .env file with your Strava API credentials.[/yellow]")
        return

    auth_manager = AuthManager(ctx.obj["user"])

    if auth_manager.is_authenticated():
        console.print("[green]✅ Already authenticated![/green]")
        if click.confirm("Do you want to re-authenticate?"):
            auth_manager.logout()
        else:
            return

    if auth_manager.authenticate():
        console.print("[green]✅ Successfully authenticated with Strava![/green]")
    else:
        console.print("[red]❌ Authentication failed. Please try again.[/red]")


@cli.command()
@click.option("--days", default=config.SYNC_LOOKBACK_DAYS, help="Number of days to sync")
@click.pass_context
def sync(ctx, days):
    """Sync activities from Strava."""
    console.print(Panel.fit(f"🔄 Syncing Activities (last {days} days)", style="bold blue"))

    coach = WeeklyCoach(ctx.obj["user"])
    try:
        with console.status("Fetching activities from Strava..."):
            count = coach.sync_activities(lookback_days=days)
    except (RefreshFailedError, StravaAPIError) as e:
        handle_strava_error(e)
        return

    console.print(f"[green]✅ Successfully synced {count} activities![/green]")

    recent = coach.activity_store.list_by_user(coach.user_id)[-5:]
    if recent:
        ftp = coach.current_ftp().value
        table = Table(title="Recent Activities", box=box.ROUNDED)
        table.add_column("Date")
        table.add_column("Name")
        table.add_column("Type", style="yellow")
        table.add_column("Duration", style="green")
        table.add_column("TSS", style="magenta")

        for activity in reversed(recent):
            table.add_row(
                activity.start_date.strftime("%Y-%m-%d"),
                activity.name[:30] or "N/A",
                activity.type or "N/A",
                f"{activity.moving_time // 60}min",
                f"{calculate_tss(activity, ftp):.0f}",
            )

        console.print("\n", table)


@cli.command()
@click.pass_context
def status(ctx):
    """Show current authentication and sync status."""
    console.print(Panel.fit("ℹ️  System Status", style="bold blue"))

    auth_manager = AuthManager(ctx.obj["user"])
    if auth_manager.is_authenticated():
        console.print("[green]✅ Authenticated with Strava[/green]")
    else:
        console.print("[yellow]⚠️  Not authenticated[/yellow]")

    db = get_db()
    with db.get_session() as session:
        activity_count = session.query(Activity).filter_by(user_id=ctx.obj["user"]).count()
        workout_count = session.query(Workout).count()

        console.print("\n📊 Database Statistics:")
        console.print(f"  • Activities: {activity_count}")
        console.print(f"  • Catalog workouts: {workout_count or 'built-in library'}")

    last_synced = ActivityStore(db).last_synced(ctx.obj["user"])
    if last_synced:
        console.print(f"\nLast sync: {last_synced.strftime('%Y-%m-%d %H:%M')} UTC")


@cli.command()
@click.option("--week", default=None, help="Any date in the week (YYYY-MM-DD), defaults to this week")
@click.option("--durations", required=True, help="Minutes per day Sunday..Saturday, e.g. 60,0,90,0,45,0,120")
@click.option("--sessions", type=int, default=None, help="Number of sessions (defaults to training days)")
@click.pass_context
def plan(ctx, week, durations, sessions):
    """Save the sessions planned for a week."""
    week_start = parse_week(week)
    day_minutes = parse_durations(durations)
    session_count = sessions if sessions is not None else len([d for d in day_minutes if d > 0])

    coach = WeeklyCoach(ctx.obj["user"])
    try:
        saved = coach.save_weekly_plan(week_start, session_count, day_minutes)
    except InvalidPlanInputError as e:
        console.print(f"[red]❌ {e}[/red]")
        return

    console.print(
        f"[green]✅ Saved {saved.session_count} sessions ({saved.planned_minutes} min) "
        f"for {format_week_range(saved.week_start_date)}[/green]"
    )


@cli.command()
@click.pass_context
def plans(ctx):
    """Show plans for the upcoming weeks."""
    coach = WeeklyCoach(ctx.obj["user"])
    upcoming = coach.list_upcoming_plans()

    if not upcoming:
        console.print("[yellow]No plans saved. Use 'strava-ftp-coach plan' to add one.[/yellow]")
        return

    table = Table(title="Weekly Plans", box=box.ROUNDED)
    table.add_column("Week")
    table.add_column("Dates")
    table.add_column("Sessions", justify="right")
    for name in DAY_NAMES:
        table.add_column(name, justify="right")

    for weekly_plan in upcoming:
        table.add_row(
            get_week_label(weekly_plan.week_start_date),
            format_week_range(weekly_plan.week_start_date),
            str(weekly_plan.session_count),
            *[str(d) if d else "-" for d in weekly_plan.session_durations[:7]],
        )

    console.print(table)


@cli.command()
@click.option("--durations", default=None, help="Minutes per day Sunday..Saturday; defaults to this week's saved plan")
@click.option("--sessions", type=int, default=None, help="Number of sessions (defaults to training days)")
@click.pass_context
def recommend(ctx, durations, sessions):
    """Recommend catalog workouts for this week."""
    console.print(Panel.fit("🎯 Weekly Workout Recommendations", style="bold blue"))

    coach = WeeklyCoach(ctx.obj["user"])
    if durations is None:
        saved = coach.plan_store.find(coach.user_id, get_week_start())
        if saved is None:
            console.print("[red]❌ No plan for this week. Pass --durations or run 'strava-ftp-coach plan'.[/red]")
            return
        day_minutes = saved.session_durations
        session_count = sessions or saved.session_count
    else:
        day_minutes = parse_durations(durations)
        session_count = sessions if sessions is not None else len([d for d in day_minutes if d > 0])

    try:
        with console.status("Analysing recent training..."):
            result = coach.generate_weekly_recommendations(session_count, day_minutes)
    except InvalidPlanInputError as e:
        console.print(f"[red]❌ {e}[/red]")
        return
    except (RefreshFailedError, StravaAPIError) as e:
        handle_strava_error(e)
        return
    except CatalogExhaustedError as e:
        console.print(f"[red]❌ {e}[/red]")
        return

    metrics = result.metrics
    console.print(Panel(
        f"[bold]Weekly TSS:[/bold] {metrics.weekly_tss:.0f}   "
        f"[bold]Chronic (per week):[/bold] {metrics.chronic_tss:.0f}   "
        f"[bold]Load ratio:[/bold] {metrics.training_load:.2f}\n"
        f"[bold]Focus:[/bold] {result.needs.primary_focus.value} / {result.needs.secondary_focus.value}\n"
        f"{result.needs.reasoning}",
        title="📈 Training Status",
        box=box.ROUNDED,
    ))

    table = Table(title=f"Week of {format_week_range(result.plan.week_start_date)}", box=box.ROUNDED)
    table.add_column("Day")
    table.add_column("Workout", style="bold")
    table.add_column("Type", style="yellow")
    table.add_column("Duration", justify="right")
    table.add_column("TSS", justify="right", style="magenta")
    table.add_column("Why")

    for recommendation in result.recommendations:
        workout = recommendation.workout
        table.add_row(
            DAY_NAMES[recommendation.session_number - 1],
            workout.name,
            workout.category.value,
            f"{workout.duration}min",
            str(workout.tss),
            recommendation.reason,
        )

    console.print(table)


@cli.command()
@click.pass_context
def project(ctx):
    """FTP estimate, readiness, next week's plan and 4-6 week projections."""
    console.print(Panel.fit("🚴 FTP & Training Status", style="bold blue"))

    coach = WeeklyCoach(ctx.obj["user"])
    report = coach.build_ftp_report()

    console.print(Panel(report.summary, title="Summary", box=box.ROUNDED))

    load = report.training_load
    compliance = report.compliance
    table = Table(title="Training Load", box=box.ROUNDED)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("CTL (fitness)", str(load.chronic_load))
    table.add_row("ATL (fatigue)", str(load.acute_load))
    table.add_row("TSB (form)", str(load.balance))
    table.add_row("Ramp rate", f"{load.ramp_rate}/week")
    table.add_row("Compliance", f"{compliance.compliance_percentage}% ({compliance.status.value})")
    table.add_row("Readiness", f"{report.readiness.status.value} (x{report.readiness.recommended_load:.2f})")
    console.print(table)

    plan_table = Table(title="Next Week", box=box.ROUNDED)
    plan_table.add_column("#", justify="right")
    plan_table.add_column("Session", style="bold")
    plan_table.add_column("Zone")
    plan_table.add_column("Duration", justify="right")
    plan_table.add_column("TSS", justify="right", style="magenta")
    for i, session in enumerate(report.adaptive_plan.sessions, 1):
        plan_table.add_row(str(i), session.name, session.zone, f"{session.duration}min", str(session.estimated_tss))
    console.print(plan_table)

    projections = report.projections
    console.print(Panel(
        f"[bold]FTP in 4 weeks:[/bold] {projections.ftp_in_4_weeks}W   "
        f"[bold]in 6 weeks:[/bold] {projections.ftp_in_6_weeks}W\n"
        f"[bold]CTL in 4 weeks:[/bold] {projections.ctl_in_4_weeks}   "
        f"[bold]in 6 weeks:[/bold] {projections.ctl_in_6_weeks}\n"
        f"[bold]Confidence:[/bold] {projections.confidence}% ({projections.confidence_label})\n\n"
        f"{report.projection_message}\n\n"
        + "\n".join(f"• {assumption}" for assumption in projections.assumptions),
        title=f"🔮 {report.projection_headline}",
        box=box.ROUNDED,
    ))


@cli.command("catalog-import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def catalog_import(file):
    """Import workouts from a JSON file (a list of workout objects)."""
    with open(file) as f:
        entries = json.load(f)

    if isinstance(entries, dict):
        entries = entries.get("workouts", [])

    stats = WorkoutCatalog(get_db()).import_workouts(entries)
    console.print(
        f"[green]✅ {stats['created']} created, {stats['updated']} updated, "
        f"{stats['skipped']} skipped[/green]"
    )


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
    finally:
        close_db()


if __name__ == "__main__":
    main()
