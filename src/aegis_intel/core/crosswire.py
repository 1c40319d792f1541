"""
CrossWire: cross-subject overlap detection.

Compares one subject's profile against every other subject visible to the
analyst and reports the entities they share (phones, emails, organizations,
breaches, data brokers, people, cities and platforms). Overlaps point at
shared infrastructure or relationships that link otherwise separate cases.
"""

import typer
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import OverlapMatch, OverlapResult, ProfileData, SubjectRecord
from .utils import console, load_json_file, save_or_print_results
from .indicators import normalize_phone
from .config_loader import CONFIG

logger = logging.getLogger(__name__)

SubjectInput = Union[SubjectRecord, Dict[str, Any]]


def _lower_set(values: Iterable[Optional[str]]) -> Set[str]:
    return {v.lower() for v in values if v}


def _city_state(city: Optional[str], state: Optional[str]) -> str:
    return ",".join(p for p in (city, state) if p).lower()


# --- Match Rules ---
# Each rule reports the other subject's entities that also appear on the
# current subject, labelled with the other subject's spelling.


def _match_phones(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_phones = {
        n for n in (normalize_phone(p.number) for p in current.contact.phone_numbers) if n
    }
    return [
        OverlapMatch(
            type="phone",
            label=p.number,
            detail="Both subjects share the same phone number: high-confidence link",
        )
        for p in other.contact.phone_numbers
        if normalize_phone(p.number) in current_phones
    ]


def _match_emails(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_emails = _lower_set(e.address for e in current.contact.email_addresses)
    return [
        OverlapMatch(
            type="email",
            label=e.address,
            detail="Both subjects share the same email address: high-confidence link",
        )
        for e in other.contact.email_addresses
        if e.address and e.address.lower() in current_emails
    ]


def _match_organization(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    ours = current.professional.organization
    theirs = other.professional.organization
    if ours and theirs and ours.lower() == theirs.lower():
        return [OverlapMatch(
            type="organization",
            label=ours,
            detail="Both subjects linked to same organization",
        )]
    return []


def _match_breaches(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_breaches = _lower_set(r.breach_name for r in current.breaches.records)
    return [
        OverlapMatch(
            type="breach",
            label=r.breach_name,
            detail="Both subjects exposed in same breach: shared organizational vulnerability",
        )
        for r in other.breaches.records
        if r.breach_name and r.breach_name.lower() in current_breaches
    ]


def _match_brokers(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_brokers = _lower_set(b.broker for b in current.digital.data_broker_listings)
    return [
        OverlapMatch(
            type="data_broker",
            label=b.broker,
            detail="Same broker has profiles on both subjects: coordinated removal possible",
        )
        for b in other.digital.data_broker_listings
        if b.broker and b.broker.lower() in current_brokers
    ]


def _network_names(profile: ProfileData) -> List[Optional[str]]:
    return [p.name for p in profile.network.associates] + [
        p.name for p in profile.network.family_members
    ]


def _match_people(
    current: ProfileData, other: ProfileData, other_name: Optional[str]
) -> List[OverlapMatch]:
    current_people = _lower_set(_network_names(current))
    matches = [
        OverlapMatch(
            type="associate",
            label=name,
            detail="Shared individual in both subjects' networks",
        )
        for name in _network_names(other)
        if name and name.lower() in current_people
    ]
    # Only the current subject's network is searched for the other subject.
    if other_name and other_name.lower() in current_people:
        matches.append(OverlapMatch(
            type="direct_link",
            label=other_name,
            detail="This subject appears directly in the current subject's network",
        ))
    return matches


def _match_locations(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_cities = {
        key for key in (_city_state(a.city, a.state) for a in current.locations.addresses)
        if len(key) > 1
    }
    matches = []
    for address in other.locations.addresses:
        key = _city_state(address.city, address.state)
        if len(key) > 1 and key in current_cities:
            matches.append(OverlapMatch(
                type="location",
                label=", ".join(p for p in (address.city, address.state) if p),
                detail="Both subjects have addresses in same city: potential geographic overlap",
            ))
    return matches


def _match_platforms(current: ProfileData, other: ProfileData) -> List[OverlapMatch]:
    current_platforms = _lower_set(a.platform for a in current.digital.social_accounts)
    return [
        OverlapMatch(
            type="platform",
            label=a.platform,
            detail="Both subjects active on same platform: potential social graph connection",
        )
        for a in other.digital.social_accounts
        if a.platform and a.platform.lower() in current_platforms
    ]


def _dedupe(matches: List[OverlapMatch]) -> List[OverlapMatch]:
    seen: Set[Tuple[str, str]] = set()
    unique = []
    for match in matches:
        key = (match.type, match.label.lower())
        if key in seen:
            continue
        seen.add(key)
        unique.append(match)
    return unique


def find_shared_entities(current: SubjectRecord, other: SubjectRecord) -> List[OverlapMatch]:
    """Runs every match rule for one pair of subjects, deduplicated."""
    ours, theirs = current.profile_data, other.profile_data
    matches = (
        _match_phones(ours, theirs)
        + _match_emails(ours, theirs)
        + _match_organization(ours, theirs)
        + _match_breaches(ours, theirs)
        + _match_brokers(ours, theirs)
        + _match_people(ours, theirs, other.name)
        + _match_locations(ours, theirs)
        + _match_platforms(ours, theirs)
    )
    return _dedupe(matches)


def detect_overlaps(
    current_subject: SubjectInput, all_subjects: Iterable[SubjectInput]
) -> List[OverlapResult]:
    """
    Detects entities shared between a subject and every other subject.

    Args:
        current_subject: The subject under review.
        all_subjects: Candidate subjects; the current subject (same id) is skipped.

    Returns:
        List[OverlapResult]: One entry per subject with at least one shared
        entity, sorted by match count (ties keep input order).
    """
    current = (
        current_subject
        if isinstance(current_subject, SubjectRecord)
        else SubjectRecord.model_validate(current_subject)
    )
    overlaps: List[OverlapResult] = []

    for candidate in all_subjects:
        other = (
            candidate
            if isinstance(candidate, SubjectRecord)
            else SubjectRecord.model_validate(candidate)
        )
        if other.id == current.id:
            continue
        matches = find_shared_entities(current, other)
        if not matches:
            continue
        overlaps.append(OverlapResult(
            subject=other,
            case_name=(other.cases.name if other.cases and other.cases.name else "Unknown Case"),
            case_type=(other.cases.type if other.cases and other.cases.type else ""),
            match_count=len(matches),
            matches=matches,
        ))

    overlaps.sort(key=lambda o: o.match_count, reverse=True)
    logger.info(
        "CrossWire found %d overlapping subjects for subject %s", len(overlaps), current.id
    )
    return overlaps


def load_subjects(subjects_file: str) -> List[SubjectRecord]:
    """Loads a JSON list of subject records."""
    raw = load_json_file(subjects_file)
    if not isinstance(raw, list):
        raise ValueError("Subjects file must contain a JSON list of subject records.")
    return [SubjectRecord.model_validate(item) for item in raw]


# --- CLI Application ---

crosswire_app = typer.Typer(
    name="crosswire",
    help="Detect entities shared between subjects across cases."
)


@crosswire_app.command("detect")
def run_crosswire(
    subjects_file: str = typer.Argument(..., help="Path to a JSON list of subject records."),
    subject_id: str = typer.Option(
        ..., "--subject", "-s", help="ID of the subject to compare against the others."
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Compares one subject against every other subject in the file.
    """
    try:
        subjects = load_subjects(subjects_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load subjects %s: %s", subjects_file, e)
        console.print(f"[bold red]Error loading subjects:[/bold red] {e}")
        raise typer.Exit(code=1)

    current = next((s for s in subjects if str(s.id) == subject_id), None)
    if current is None:
        console.print(f"[bold red]Error:[/bold red] Subject '{subject_id}' not found.")
        raise typer.Exit(code=1)

    limit = CONFIG.crosswire.max_candidates
    if len(subjects) > limit:
        logger.warning("Capping CrossWire candidates at %d of %d subjects", limit, len(subjects))
        subjects = subjects[:limit]

    overlaps = detect_overlaps(current, subjects)

    if output_file:
        save_or_print_results(overlaps, output_file)
        return

    if not overlaps:
        console.print(f"[green]No overlaps found for {current.name or current.id}.[/green]")
        return

    table = Table(title=f"CrossWire Overlaps for {current.name or current.id}")
    table.add_column("Subject", style="cyan")
    table.add_column("Case")
    table.add_column("Matches", style="magenta")
    table.add_column("Shared Entities")
    for overlap in overlaps:
        table.add_row(
            overlap.subject.name or str(overlap.subject.id),
            f"{overlap.case_name} ({overlap.case_type})" if overlap.case_type else overlap.case_name,
            str(overlap.match_count),
            "\n".join(f"{m.type}: {m.label}" for m in overlap.matches),
        )
    console.print(table)
