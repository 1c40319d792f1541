"""
Routine pattern heatmap.

Projects a subject's documented routines onto a weekday x hour grid, so an
analyst can see when the subject is most predictable.
"""

import re
import typer
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import HeatmapCell, Routine
from .aegis_score import load_profile
from .utils import console, save_or_print_results

logger = logging.getLogger(__name__)

DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WEEKDAYS = DAYS[:5]
WEEKEND = DAYS[5:]
HOURS = range(24)

DEFAULT_CONSISTENCY = 0.5
ADJACENT_HOUR_FACTOR = 0.4

_TWELVE_HOUR = re.compile(r"(\d{1,2})\s*(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"(\d{1,2}):(\d{2})")

Heatmap = Dict[str, Dict[int, HeatmapCell]]


def parse_active_days(schedule: str) -> List[str]:
    """Days a schedule covers; weekdays when nothing recognizable is found."""
    schedule = schedule.lower()
    if "mon" in schedule and "fri" in schedule:
        return list(WEEKDAYS)
    if "daily" in schedule or "every day" in schedule:
        return list(DAYS)
    if "weekend" in schedule or "sat" in schedule:
        return list(WEEKEND)
    named = [day for day in DAYS if day.lower() in schedule]
    return named or list(WEEKDAYS)


def parse_hour(schedule: str) -> int:
    """
    Hour of day a schedule starts at.

    Tries '7am' / '7:30 pm', then 24-hour '18:45', then time-of-day words;
    defaults to 9.
    """
    schedule = schedule.lower()
    match = _TWELVE_HOUR.search(schedule)
    if match:
        hour = int(match.group(1))
        meridiem = match.group(3).lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0
        return hour
    match = _TWENTY_FOUR_HOUR.search(schedule)
    if match:
        return int(match.group(1))
    if "morning" in schedule or "am" in schedule:
        return 7
    if "evening" in schedule or "pm" in schedule:
        return 18
    if "lunch" in schedule or "noon" in schedule:
        return 12
    return 9


def build_heatmap_from_routines(routines: Iterable[Union[Routine, Dict[str, Any]]]) -> Heatmap:
    """
    Builds the weekday x hour intensity grid for a list of routines.

    Each routine adds its consistency at its start hour and a fraction of it
    to the neighbouring hours. Intensities are capped at 1.
    """
    grid: Heatmap = {day: {hour: HeatmapCell() for hour in HOURS} for day in DAYS}

    for item in routines:
        routine = item if isinstance(item, Routine) else Routine.model_validate(item)
        schedule = routine.schedule or ""
        consistency = routine.consistency or DEFAULT_CONSISTENCY
        hour = parse_hour(schedule)

        for day in parse_active_days(schedule):
            for offset in (-1, 0, 1):
                h = hour + offset
                if h not in HOURS:
                    continue
                cell = grid[day][h]
                added = consistency if offset == 0 else consistency * ADJACENT_HOUR_FACTOR
                cell.intensity = min(1.0, cell.intensity + added)
                if offset == 0:
                    cell.activities.append(routine.name or "Activity")

    return grid


# --- CLI Application ---

heatmap_app = typer.Typer(
    name="heatmap",
    help="Visualize when a subject's routines make them predictable."
)


@heatmap_app.command("run")
def run_heatmap(
    profile_file: str = typer.Argument(..., help="Path to the subject's profile JSON file."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Renders the routine heatmap for a profile.
    """
    try:
        profile = load_profile(profile_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load profile %s: %s", profile_file, e)
        console.print(f"[bold red]Error loading profile:[/bold red] {e}")
        raise typer.Exit(code=1)

    grid = build_heatmap_from_routines(profile.behavioral.routines)

    if output_file:
        save_or_print_results(
            {day: {str(h): cell for h, cell in hours.items()} for day, hours in grid.items()},
            output_file,
        )
        return

    shades = " ░▒▓█"
    table = Table(title="Routine Heatmap (hour of day)")
    table.add_column("Day", style="cyan")
    for hour in HOURS:
        table.add_column(f"{hour:02d}", justify="center")
    for day in DAYS:
        row = [shades[min(4, int(cell.intensity * 4 + 0.999))] for cell in grid[day].values()]
        table.add_row(day, *row)
    console.print(table)
