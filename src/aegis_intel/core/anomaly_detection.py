"""
Profile change detection.

Compares two snapshots of a subject's profile and reports what changed:
new accounts, breaches, addresses, contact points and people, and data
broker listings that changed status.
"""

import typer
import logging
from typing import Any, Dict, List, Optional, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import ProfileAnomaly, ProfileData
from .aegis_score import load_profile
from .utils import console, save_or_print_results

logger = logging.getLogger(__name__)

ProfileInput = Union[ProfileData, Dict[str, Any], None]


def _social_key(account) -> str:
    return f"{account.platform}:{account.handle or account.url}"


def _address_key(address) -> str:
    return ",".join(p for p in (address.street, address.city, address.state) if p).lower()


def _people(profile: ProfileData) -> List[tuple]:
    return [(p.name, "associate") for p in profile.network.associates] + [
        (p.name, "family member") for p in profile.network.family_members
    ]


def detect_anomalies(current: ProfileInput, previous: ProfileInput) -> List[ProfileAnomaly]:
    """
    Lists the changes between a previous and a current profile snapshot.

    Returns an empty list when either snapshot is missing.
    """
    cur = ProfileData.coerce(current)
    prev = ProfileData.coerce(previous)
    if cur is None or prev is None:
        return []
    anomalies: List[ProfileAnomaly] = []

    def report(kind: str, section: str, description: str, severity: str) -> None:
        anomalies.append(ProfileAnomaly(
            type=kind, section=section, description=description, severity=severity
        ))

    prev_socials = {_social_key(a) for a in prev.digital.social_accounts}
    for account in cur.digital.social_accounts:
        if _social_key(account) not in prev_socials:
            report(
                "new_social", "digital",
                f"New social account: {account.platform} ({account.handle or account.url})",
                "medium",
            )

    prev_breaches = {r.breach_name.lower() for r in prev.breaches.records if r.breach_name}
    for record in cur.breaches.records:
        if record.breach_name and record.breach_name.lower() not in prev_breaches:
            report("new_breach", "breaches", f"New breach detected: {record.breach_name}", "high")

    prev_addresses = list(dict.fromkeys(_address_key(a) for a in prev.locations.addresses))
    cur_addresses = list(dict.fromkeys(_address_key(a) for a in cur.locations.addresses))
    for address in cur_addresses:
        if address and address not in prev_addresses:
            report("new_address", "locations", f"New address added: {address}", "medium")
    for address in prev_addresses:
        if address and address not in cur_addresses:
            report("removed_address", "locations", f"Address removed: {address}", "low")

    prev_phones = list(dict.fromkeys(p.number for p in prev.contact.phone_numbers if p.number))
    cur_phones = list(dict.fromkeys(p.number for p in cur.contact.phone_numbers if p.number))
    for number in cur_phones:
        if number not in prev_phones:
            report("new_phone", "contact", f"New phone number: {number}", "medium")
    for number in prev_phones:
        if number not in cur_phones:
            report("removed_phone", "contact", f"Phone number removed: {number}", "low")

    prev_emails = {e.address.lower() for e in prev.contact.email_addresses if e.address}
    cur_emails = dict.fromkeys(e.address.lower() for e in cur.contact.email_addresses if e.address)
    for email in cur_emails:
        if email not in prev_emails:
            report("new_email", "contact", f"New email address: {email}", "medium")

    prev_people = {name.lower() for name, _ in _people(prev) if name}
    for name, kind in _people(cur):
        if name and name.lower() not in prev_people:
            report("new_person", "network", f"New {kind}: {name}", "medium")

    prev_status = {
        b.broker.lower(): b.status for b in prev.digital.data_broker_listings if b.broker
    }
    for listing in cur.digital.data_broker_listings:
        if not listing.broker:
            continue
        before = prev_status.get(listing.broker.lower())
        if before and before != listing.status:
            report(
                "broker_status_change", "digital",
                f"{listing.broker} status changed: {before} → {listing.status}",
                "high" if listing.status == "active" else "low",
            )

    logger.debug("Detected %d profile changes", len(anomalies))
    return anomalies


# --- CLI Application ---

anomaly_app = typer.Typer(
    name="anomalies",
    help="Detect changes between two snapshots of a profile."
)


@anomaly_app.command("diff")
def run_anomaly_diff(
    current_file: str = typer.Argument(..., help="Path to the current profile JSON file."),
    previous_file: str = typer.Argument(..., help="Path to the previous profile JSON file."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Lists what changed between two profile snapshots.
    """
    try:
        current = load_profile(current_file)
        previous = load_profile(previous_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load profile snapshots: %s", e)
        console.print(f"[bold red]Error loading profiles:[/bold red] {e}")
        raise typer.Exit(code=1)

    anomalies = detect_anomalies(current, previous)

    if output_file:
        save_or_print_results(anomalies, output_file)
        return

    if not anomalies:
        console.print("[green]No changes detected.[/green]")
        return

    colors = {"high": "red", "medium": "yellow", "low": "dim"}
    table = Table(title="Profile Changes")
    table.add_column("Section", style="cyan")
    table.add_column("Change")
    table.add_column("Severity")
    for anomaly in anomalies:
        color = colors.get(anomaly.severity, "white")
        table.add_row(anomaly.section, anomaly.description, f"[{color}]{anomaly.severity}[/{color}]")
    console.print(table)
