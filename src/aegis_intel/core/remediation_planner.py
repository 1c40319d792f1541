"""
Remediation Planner Module.

Derives actionable remediation options from a subject's profile. Each rule
checks for one exposure signal and, when present, emits an option carrying
an estimated Aegis Score reduction and the factor it targets. Rules are
independent; several options may target the same factor.
"""

import typer
import logging
from typing import Any, Dict, List, Optional, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import ProfileData, RemediationOption
from .utils import console, plural, round_half_up, save_or_print_results
from .aegis_score import calculate_aegis_score, load_profile, print_factor_table, risk_color
from .remediation_simulator import simulate_remediation
from .indicators import (
    broadcasts_gps,
    consistency_percent,
    family_has_public_social,
    is_public,
    is_public_payment_feed,
)

logger = logging.getLogger(__name__)

HIGH_CONSISTENCY_PERCENT = 60


# --- Remediation Rules ---


def _digital_options(pd: ProfileData) -> List[RemediationOption]:
    options = []

    active_brokers = [b for b in pd.digital.data_broker_listings if b.status == "active"]
    if active_brokers:
        count = len(active_brokers)
        options.append(RemediationOption(
            id="remove_brokers",
            label=f"Remove {count} active data broker listings",
            description=f"{count} {plural(count, 'broker')} currently exposing PII. Removal requests typically take 2-4 weeks.",
            score_reduction=count * 3,
            affected_factor="digital_footprint",
            category="digital",
        ))

    public_accounts = [a for a in pd.digital.social_accounts if is_public(a)]
    if public_accounts:
        platforms = ", ".join(a.platform for a in public_accounts if a.platform) or "accounts"
        options.append(RemediationOption(
            id="privatize_social",
            label=f"Privatize {len(public_accounts)} social media accounts",
            description=f"Set {platforms} to private to reduce digital footprint.",
            score_reduction=len(public_accounts) * 4,
            affected_factor="digital_footprint",
            category="digital",
        ))

    breach_count = len(pd.breaches.records)
    if breach_count:
        options.append(RemediationOption(
            id="rotate_credentials",
            label=f"Rotate credentials for {breach_count} breached accounts",
            description="Change passwords and enable 2FA on all breached accounts.",
            score_reduction=min(breach_count * 4, 20),
            affected_factor="breach_exposure",
            category="digital",
        ))

    if any(is_public_payment_feed(a) for a in pd.digital.social_accounts):
        options.append(RemediationOption(
            id="privatize_venmo",
            label="Set Venmo transactions to private",
            description="Public Venmo feeds reveal financial associations and location patterns.",
            score_reduction=5,
            affected_factor="digital_footprint",
            category="digital",
        ))

    return options


def _behavioral_options(pd: ProfileData) -> List[RemediationOption]:
    options = []
    routines = pd.behavioral.routines

    predictable = [
        r for r in routines if consistency_percent(r.consistency) > HIGH_CONSISTENCY_PERCENT
    ]
    for i, routine in enumerate(predictable):
        raw = routine.consistency or 0
        consistency = raw if raw > 1 else round_half_up(raw * 100)
        location = routine.location or routine.name or "routine"
        schedule = routine.schedule or routine.name or ""
        options.append(RemediationOption(
            id=f"randomize_routine_{i}",
            label=f"Randomize schedule: {schedule} {location}".strip(),
            description=(
                f"Current consistency: {consistency:g}%. Varying this routine by "
                "±30-60 minutes on random days reduces predictability."
            ),
            score_reduction=round_half_up(consistency * 0.08),
            affected_factor="behavioral_predictability",
            category="behavioral",
        ))

    if routines:
        address_count = len(pd.locations.addresses)
        routine_count = len(routines)
        options.append(RemediationOption(
            id="vary_commute",
            label="Vary commute routes (rotate 2-3 alternatives)",
            description=(
                f"{address_count} known {plural(address_count, 'address', 'addresses')} and "
                f"{routine_count} {plural(routine_count, 'routine')} create predictable transit patterns."
            ),
            score_reduction=max(2, min(address_count + routine_count, 8)),
            affected_factor="behavioral_predictability",
            category="behavioral",
        ))

    gps_accounts = [a for a in pd.digital.social_accounts if broadcasts_gps(a)]
    if gps_accounts:
        platforms = ", ".join(a.platform for a in gps_accounts if a.platform) or "fitness trackers"
        options.append(RemediationOption(
            id="disable_gps",
            label=f"Eliminate GPS-broadcasting activities ({platforms})",
            description="Public GPS data reveals routes, timing patterns, and frequently visited locations.",
            score_reduction=10 if len(gps_accounts) > 1 else 6,
            affected_factor="behavioral_predictability",
            category="behavioral",
        ))

    return options


def _physical_options(pd: ProfileData) -> List[RemediationOption]:
    options = []
    addresses = pd.locations.addresses

    for i, address in enumerate(addresses):
        location = ", ".join(p for p in (address.city, address.state) if p) or f"Address {i + 1}"
        options.append(RemediationOption(
            id=f"enhance_security_{i}",
            label=f"Enhance security at {address.type or 'address'}: {location}",
            description="Install monitoring, vary entry/exit patterns, assess sight lines from adjacent structures.",
            score_reduction=6 if address.type == "primary" else 3,
            affected_factor="physical_opsec",
            category="physical",
        ))

    if len(addresses) > 1:
        options.append(RemediationOption(
            id="reduce_addresses",
            label="Reduce confirmed address count (PO box, registered agent)",
            description=(
                f"{len(addresses)} confirmed addresses in public records. Use PO boxes and "
                "registered agents to reduce publicly linked locations."
            ),
            score_reduction=min(len(addresses) * 2, 8),
            affected_factor="physical_opsec",
            category="physical",
        ))

    properties = pd.public_records.properties
    if properties:
        count = len(properties)
        options.append(RemediationOption(
            id="property_trust",
            label=f"Transfer {count} {plural(count, 'property', 'properties')} to trust or LLC",
            description=(
                "Properties held in personal name are discoverable via public records. "
                "Transferring to a trust removes the direct name link."
            ),
            score_reduction=count * 3,
            affected_factor="physical_opsec",
            category="physical",
        ))

    return options


def _network_options(pd: ProfileData) -> List[RemediationOption]:
    exposed = [f for f in pd.network.family_members if family_has_public_social(f)]
    if not exposed:
        return []
    count = len(exposed)
    return [RemediationOption(
        id="family_opsec",
        label=f"Family OPSEC: {count} family {plural(count, 'member')} with public social media",
        description=(
            "Family members with public social accounts can inadvertently reveal locations, "
            "schedules, and associations. Recommend privacy settings review."
        ),
        score_reduction=count * 2,
        affected_factor="network_exposure",
        category="network",
    )]


def order_by_category(options: List[RemediationOption]) -> List[RemediationOption]:
    """
    Groups options by category in order of first appearance, and sorts each
    group by score reduction (largest first, ties in emission order).
    """
    groups: Dict[str, List[RemediationOption]] = {}
    for option in options:
        groups.setdefault(option.category, []).append(option)
    ordered: List[RemediationOption] = []
    for group in groups.values():
        ordered.extend(sorted(group, key=lambda o: o.score_reduction, reverse=True))
    return ordered


def build_remediation_options(
    profile: Union[ProfileData, Dict[str, Any], None]
) -> List[RemediationOption]:
    """
    Builds every applicable remediation option for a profile.

    Args:
        profile: The subject's profile data. None yields no options.

    Returns:
        List[RemediationOption]: Options in category order, all disabled.
    """
    pd = ProfileData.coerce(profile)
    if pd is None:
        return []
    options = (
        _digital_options(pd)
        + _behavioral_options(pd)
        + _physical_options(pd)
        + _network_options(pd)
    )
    logger.debug("Built %d remediation options", len(options))
    return order_by_category(options)


# --- CLI Application ---

remediation_app = typer.Typer(
    name="remediation",
    help="Plan remediation and simulate its effect on the Aegis Score."
)


def _load_or_exit(profile_file: str) -> ProfileData:
    try:
        return load_profile(profile_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load profile %s: %s", profile_file, e)
        console.print(f"[bold red]Error loading profile:[/bold red] {e}")
        raise typer.Exit(code=1)


@remediation_app.command("plan")
def run_remediation_plan(
    profile_file: str = typer.Argument(..., help="Path to the subject's profile JSON file."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Lists the remediation options available for a profile.
    """
    options = build_remediation_options(_load_or_exit(profile_file))

    if output_file:
        save_or_print_results(options, output_file)
        return

    if not options:
        console.print("[green]No remediation options apply to this profile.[/green]")
        return

    table = Table(title="Remediation Options")
    table.add_column("ID", style="cyan")
    table.add_column("Action")
    table.add_column("Reduction", style="magenta")
    table.add_column("Factor", style="dim")
    for option in options:
        table.add_row(option.id, option.label, f"-{option.score_reduction}", option.affected_factor)
    console.print(table)


@remediation_app.command("simulate")
def run_remediation_simulation(
    profile_file: str = typer.Argument(..., help="Path to the subject's profile JSON file."),
    enable: List[str] = typer.Option(
        [], "--enable", "-e", help="ID of a remediation option to apply (repeatable)."
    ),
    enable_all: bool = typer.Option(
        False, "--all", help="Apply every available remediation option."
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Shows the projected Aegis Score after applying the chosen options.
    """
    profile = _load_or_exit(profile_file)
    base = calculate_aegis_score(profile)
    options = build_remediation_options(profile)

    known = {option.id for option in options}
    unknown = [option_id for option_id in enable if option_id not in known]
    if unknown:
        console.print(f"[bold red]Error:[/bold red] Unknown option id(s): {', '.join(unknown)}")
        raise typer.Exit(code=1)

    for option in options:
        option.enabled = enable_all or option.id in enable

    result = simulate_remediation(base, options)

    if output_file:
        save_or_print_results(result, output_file)
        return

    before, after = risk_color(base.risk_level), risk_color(result.risk_level)
    console.print(
        f"\n[bold]Aegis Score:[/bold] [{before}]{base.composite} ({base.risk_level})[/{before}]"
        f" -> [bold {after}]{result.composite} ({result.risk_level})[/bold {after}]"
    )
    console.print(f"  Total reduction: {result.reduction}\n")
    print_factor_table("Simulated Factor Breakdown", result.factors)
