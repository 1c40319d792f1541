"""
Data freshness tracking.

Classifies how recently a subject, and each section of its profile, was
updated or re-checked by enrichment.
"""

import typer
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import FreshnessResult, ProfileData, SubjectRecord
from .utils import console, load_json_file, save_or_print_results

logger = logging.getLogger(__name__)

FRESH_DAYS = 30
AGING_DAYS = 90
UNKNOWN_AGE_DAYS = 999

SECTION_KEYS = (
    "identity",
    "professional",
    "locations",
    "contact",
    "digital",
    "breaches",
    "network",
    "public_records",
    "behavioral",
    "notes",
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_since(timestamp: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since a timestamp (naive values are taken as UTC)."""
    now = _as_utc(now or datetime.now(timezone.utc))
    return (now - _as_utc(timestamp)).days


def calculate_freshness(
    updated_at: Optional[datetime], now: Optional[datetime] = None
) -> FreshnessResult:
    """
    Classifies a timestamp as fresh (<30 days), aging (<90 days) or stale.
    A missing timestamp is stale.
    """
    if updated_at is None:
        return FreshnessResult(status="stale", days_since=UNKNOWN_AGE_DAYS)
    days = days_since(updated_at, now)
    if days < FRESH_DAYS:
        status = "fresh"
    elif days < AGING_DAYS:
        status = "aging"
    else:
        status = "stale"
    return FreshnessResult(status=status, days_since=days)


def _latest(timestamps: Iterable[Optional[datetime]]) -> Optional[datetime]:
    present = [_as_utc(t) for t in timestamps if t is not None]
    return max(present) if present else None


def _section_checked_at(pd: ProfileData, key: str) -> Optional[datetime]:
    if key == "breaches":
        return _latest(r.enrichment.last_checked for r in pd.breaches.records if r.enrichment)
    if key == "digital":
        return _latest(a.last_checked for a in pd.digital.social_accounts)
    if key == "contact":
        return _latest(
            e.enrichment.last_checked for e in pd.contact.email_addresses if e.enrichment
        )
    return None


def get_profile_freshness(
    profile: Union[ProfileData, Dict[str, Any], None],
    subject_updated_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> Dict[str, FreshnessResult]:
    """
    Freshness for every profile section.

    Sections with enrichment timestamps (breaches, digital, contact) use the
    most recent check; the rest fall back to the subject's update time.
    """
    pd = ProfileData.coerce(profile) or ProfileData()
    return {
        key: calculate_freshness(_section_checked_at(pd, key) or subject_updated_at, now)
        for key in SECTION_KEYS
    }


# --- CLI Application ---

freshness_app = typer.Typer(
    name="freshness",
    help="Report how current a subject's profile data is."
)


@freshness_app.command("run")
def run_freshness(
    subject_file: str = typer.Argument(..., help="Path to a subject record JSON file."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Shows freshness for the subject and each of its profile sections.
    """
    try:
        subject = SubjectRecord.model_validate(load_json_file(subject_file))
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load subject %s: %s", subject_file, e)
        console.print(f"[bold red]Error loading subject:[/bold red] {e}")
        raise typer.Exit(code=1)

    overall = calculate_freshness(subject.updated_at)
    sections = get_profile_freshness(subject.profile_data, subject.updated_at)

    if output_file:
        save_or_print_results({"subject": overall, "sections": sections}, output_file)
        return

    colors = {"fresh": "green", "aging": "yellow", "stale": "red"}
    console.print(
        f"\n[bold]Subject data is [{colors[overall.status]}]{overall.status}[/{colors[overall.status]}]"
        f"[/bold] ({overall.days_since} days)\n"
    )
    table = Table(title="Section Freshness")
    table.add_column("Section", style="cyan")
    table.add_column("Status")
    table.add_column("Days Since Update", style="magenta")
    for key, result in sections.items():
        color = colors[result.status]
        table.add_row(key, f"[{color}]{result.status}[/{color}]", str(result.days_since))
    console.print(table)
