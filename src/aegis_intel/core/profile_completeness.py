"""
Profile completeness scoring.

Measures how much of a subject's dossier has been filled in. Twelve sections
carry fixed weights; a section counts when its presence check passes. The
volume-weighted mode instead credits each section in proportion to how much
data it holds.
"""

import typer
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from rich.table import Table
from pydantic import BaseModel, ValidationError
from .schemas import CompletenessResult, ProfileData
from .utils import console, round_half_up, save_or_print_results
from .aegis_score import load_profile

logger = logging.getLogger(__name__)


def _filled(value: Any) -> bool:
    # An explicit empty list counts as filled.
    return value is not None and value != "" and value is not False


def _explicit(obj: BaseModel, field: str) -> Any:
    return getattr(obj, field) if field in obj.model_fields_set else None


def _count_filled(obj: Optional[Union[BaseModel, Dict[str, Any]]], fields: Sequence[str]) -> int:
    if obj is None:
        return 0
    getter = obj.get if isinstance(obj, dict) else lambda f: _explicit(obj, f)
    return len([f for f in fields if _filled(getter(f))])


def _ratio(count: float, full: float) -> float:
    return min(count / full, 1)


def _mean_detail(items: Sequence[Any], fields: Sequence[str]) -> float:
    if not items:
        return 0.0
    return sum(_count_filled(item, fields) / len(fields) for item in items) / len(items)


# --- Volume-weighted section scores (0.0 to 1.0) ---

IDENTITY_FIELDS = ("full_name", "date_of_birth", "gender", "nationality", "aliases")
PROFESSIONAL_FIELDS = ("title", "organization", "industry", "linkedin_url", "employment_history")
ADDRESS_FIELDS = ("street", "city", "state", "zip", "country", "type", "confidence")
SOCIAL_FIELDS = ("platform", "username", "url", "visibility", "followers")
BREACH_FIELDS = ("breach_name", "severity", "data_types", "date", "source")
FAMILY_FIELDS = ("name", "relationship", "notes", "social_media")
ROUTINE_FIELDS = ("name", "schedule", "location", "consistency", "data_source")


def _identity_volume(d: ProfileData) -> float:
    identity = d.identity
    fields = _count_filled(identity, IDENTITY_FIELDS)
    name_points = 0.4 if identity.full_name else 0
    field_points = _ratio(fields - (1 if identity.full_name else 0), 4) * 0.3
    alias_points = _ratio(len(identity.aliases), 3) * 0.3
    return name_points + field_points + alias_points


def _professional_volume(d: ProfileData) -> float:
    fields = _count_filled(d.professional, PROFESSIONAL_FIELDS)
    return _ratio(fields, 5) * 0.6 + _ratio(len(d.professional.employment_history), 3) * 0.4


def _locations_volume(d: ProfileData) -> float:
    addresses = d.locations.addresses
    if not addresses:
        return 0
    return _ratio(len(addresses), 4) * 0.5 + _mean_detail(addresses, ADDRESS_FIELDS) * 0.5


def _contact_volume(d: ProfileData) -> float:
    phones = len([p for p in d.contact.phone_numbers if p.number])
    emails = len([e for e in d.contact.email_addresses if e.address])
    return _ratio(phones, 3) * 0.5 + _ratio(emails, 3) * 0.5


def _social_volume(d: ProfileData) -> float:
    accounts = d.digital.social_accounts
    if not accounts:
        return 0
    return _ratio(len(accounts), 6) * 0.6 + _mean_detail(accounts, SOCIAL_FIELDS) * 0.4


def _brokers_volume(d: ProfileData) -> float:
    return _ratio(len(d.digital.data_broker_listings), 5)


def _breaches_volume(d: ProfileData) -> float:
    records = d.breaches.records
    if not records:
        return 0
    return _ratio(len(records), 5) * 0.5 + _mean_detail(records, BREACH_FIELDS) * 0.5


def _family_volume(d: ProfileData) -> float:
    members = d.network.family_members
    if not members:
        return 0
    return _ratio(len(members), 5) * 0.5 + _mean_detail(members, FAMILY_FIELDS) * 0.5


def _associates_volume(d: ProfileData) -> float:
    return _ratio(len(d.network.associates), 4)


def _public_record_count(d: ProfileData) -> int:
    records = d.public_records
    return len(records.properties) + len(records.corporate_filings) + len(records.court_records)


def _public_records_volume(d: ProfileData) -> float:
    return _ratio(_public_record_count(d), 5)


def _behavioral_volume(d: ProfileData) -> float:
    routines = d.behavioral.routines
    if not routines:
        return 0
    return _ratio(len(routines), 4) * 0.5 + _mean_detail(routines, ROUTINE_FIELDS) * 0.5


def _checked_emails(d: ProfileData) -> int:
    return len([
        e for e in d.contact.email_addresses
        if e.enrichment is not None and e.enrichment.status == "checked"
    ])


def _enriched_volume(d: ProfileData) -> float:
    checked = _checked_emails(d)
    if checked == 0:
        return 0
    return _ratio(checked, max(len(d.contact.email_addresses), 1))


@dataclass(frozen=True)
class Section:
    key: str
    label: str
    weight: int
    is_filled: Callable[[ProfileData], bool]
    volume: Callable[[ProfileData], float]


# Weights total 110, not 100; the score is capped rather than normalized.
SECTIONS: List[Section] = [
    Section("identity", "Identity", 15,
            lambda d: bool(d.identity.full_name), _identity_volume),
    Section("professional", "Professional info", 10,
            lambda d: _count_filled(d.professional, PROFESSIONAL_FIELDS) > 0, _professional_volume),
    Section("locations", "Locations", 12,
            lambda d: len(d.locations.addresses) > 0, _locations_volume),
    Section("contact", "Contact info", 8,
            lambda d: any(p.number for p in d.contact.phone_numbers)
            or any(e.address for e in d.contact.email_addresses), _contact_volume),
    Section("social", "Social accounts", 12,
            lambda d: len(d.digital.social_accounts) > 0, _social_volume),
    Section("brokers", "Data broker listings", 8,
            lambda d: len(d.digital.data_broker_listings) > 0, _brokers_volume),
    Section("breaches", "Breach data", 10,
            lambda d: len(d.breaches.records) > 0, _breaches_volume),
    Section("family", "Family details", 8,
            lambda d: len(d.network.family_members) > 0, _family_volume),
    Section("associates", "Associates", 5,
            lambda d: len(d.network.associates) > 0, _associates_volume),
    Section("public_records", "Public records", 5,
            lambda d: _public_record_count(d) > 0, _public_records_volume),
    Section("behavioral", "Behavioral patterns", 7,
            lambda d: len(d.behavioral.routines) > 0, _behavioral_volume),
    Section("enriched", "Enriched data", 5,
            lambda d: _checked_emails(d) > 0, _enriched_volume),
]


def calculate_completeness(
    profile: Union[ProfileData, Dict[str, Any], None],
    volume_weighted: bool = False,
) -> CompletenessResult:
    """
    Scores how complete a profile is on a 0-100 scale.

    Args:
        profile: The subject's profile data. None scores 0 with every section missing.
        volume_weighted: Credit sections by how much data they hold instead
                         of by simple presence.

    Returns:
        CompletenessResult: The score, per-section presence and missing labels.
    """
    pd = ProfileData.coerce(profile)
    if pd is None:
        return CompletenessResult(score=0, details={}, missing=[s.label for s in SECTIONS])

    score = 0
    details: Dict[str, bool] = {}
    missing: List[str] = []
    for section in SECTIONS:
        if volume_weighted:
            fraction = section.volume(pd)
            present = fraction > 0
            score += round_half_up(fraction * section.weight)
        else:
            present = section.is_filled(pd)
            score += section.weight if present else 0
        details[section.key] = present
        if not present:
            missing.append(section.label)

    return CompletenessResult(score=min(score, 100), details=details, missing=missing)


# --- CLI Application ---

completeness_app = typer.Typer(
    name="completeness",
    help="Measure how complete a subject profile is."
)


@completeness_app.command("run")
def run_completeness(
    profile_file: str = typer.Argument(..., help="Path to the subject's profile JSON file."),
    volume: bool = typer.Option(
        False, "--volume", help="Weight sections by how much data they hold."
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Scores profile completeness and lists the sections still missing.
    """
    try:
        profile = load_profile(profile_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load profile %s: %s", profile_file, e)
        console.print(f"[bold red]Error loading profile:[/bold red] {e}")
        raise typer.Exit(code=1)

    result = calculate_completeness(profile, volume_weighted=volume)

    if output_file:
        save_or_print_results(result, output_file)
        return

    console.print(f"\n[bold]Profile Completeness:[/bold] {result.score}%\n")
    table = Table(title="Sections")
    table.add_column("Section", style="cyan")
    table.add_column("Weight")
    table.add_column("Present")
    for section in SECTIONS:
        present = result.details.get(section.key, False)
        table.add_row(section.label, str(section.weight), "[green]yes[/green]" if present else "[red]no[/red]")
    console.print(table)
