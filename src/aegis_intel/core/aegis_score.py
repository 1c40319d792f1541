"""
Module for the Aegis Score.

Computes a weighted five-factor composite exposure score (0-100) for a
subject's profile, plus a ranked list of human-readable score drivers.
The score is recomputed from the profile on every call; nothing is cached.
"""

import typer
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from rich.table import Table
from pydantic import ValidationError
from .schemas import AegisScore, FactorScore, ProfileData, ScoreDriver
from .utils import console, load_json_file, plural, round_half_up, save_or_print_results
from .indicators import (
    exposes_password,
    family_publicly_exposed,
    has_gps_signal,
    is_public,
    is_strava,
)

logger = logging.getLogger(__name__)

# Factor key -> (label, weight in percent). Weights sum to 100.
FACTORS: Dict[str, tuple] = {
    "digital_footprint": ("Digital Footprint", 25),
    "breach_exposure": ("Breach Exposure", 20),
    "behavioral_predictability": ("Behavioral Predictability", 25),
    "physical_opsec": ("Physical OPSEC", 15),
    "network_exposure": ("Network Exposure", 15),
}

RISK_THRESHOLDS = (
    (75, "CRITICAL"),
    (55, "HIGH"),
    (35, "MODERATE"),
)

MAX_DRIVERS = 10


def risk_level_for(composite: float) -> str:
    """Maps a composite score onto its risk level."""
    for threshold, level in RISK_THRESHOLDS:
        if composite >= threshold:
            return level
    return "LOW"


def _build_factors(scores: Dict[str, float]) -> Dict[str, FactorScore]:
    return {
        key: FactorScore(score=round_half_up(scores.get(key, 0)), weight=weight, label=label)
        for key, (label, weight) in FACTORS.items()
    }


def default_score() -> AegisScore:
    """The zero score returned when there is no profile to score."""
    return AegisScore(
        composite=0,
        risk_level="LOW",
        factors=_build_factors({}),
        drivers=[],
        calculated_at=datetime.now(timezone.utc),
    )


# --- Factor Calculations ---


def _digital_footprint(pd: ProfileData) -> float:
    accounts = pd.digital.social_accounts
    public_accounts = [a for a in accounts if is_public(a)]
    active_brokers = [b for b in pd.digital.data_broker_listings if b.status == "active"]
    return min(100, len(accounts) * 8 + len(public_accounts) * 12 + len(active_brokers) * 6)


def _breach_exposure(pd: ProfileData) -> float:
    records = pd.breaches.records
    high_severity = [r for r in records if r.severity == "high"]
    password_exposed = 1 if any(exposes_password(r) for r in records) else 0
    return min(100, len(records) * 10 + len(high_severity) * 15 + password_exposed * 20)


def _behavioral_predictability(pd: ProfileData) -> float:
    routines = pd.behavioral.routines
    observations = pd.behavioral.observations
    high_exploit = [o for o in observations if o.exploitability == "high"]
    avg_consistency = (
        sum(r.consistency or 0 for r in routines) / len(routines) if routines else 0
    )
    gps = 1 if any(has_gps_signal(a) for a in pd.digital.social_accounts) else 0
    return min(
        100,
        avg_consistency * 80
        + len(routines) * 5
        + gps * 15
        + len(observations) * 3
        + len(high_exploit) * 8,
    )


def _physical_opsec(pd: ProfileData) -> float:
    addresses = pd.locations.addresses
    confirmed = [a for a in addresses if a.confidence == "confirmed"]
    return min(
        100, len(confirmed) * 20 + len(addresses) * 10 + len(pd.public_records.properties) * 12
    )


def _network_exposure(pd: ProfileData) -> float:
    family = pd.network.family_members
    exposed_family = [f for f in family if family_publicly_exposed(f)]
    return min(
        100, len(exposed_family) * 15 + len(family) * 5 + len(pd.network.associates) * 5
    )


# --- Score Drivers ---


def build_score_drivers(profile: Union[ProfileData, Dict[str, Any], None]) -> List[ScoreDriver]:
    """
    Builds the human-readable contributors to a profile's score.

    Impacts are heuristic weights for ranking, not factor points. Drivers are
    sorted by impact (ties keep discovery order) and capped at ten.
    """
    pd = ProfileData.coerce(profile)
    if pd is None:
        return []
    drivers: List[ScoreDriver] = []

    brokers = len([b for b in pd.digital.data_broker_listings if b.status == "active"])
    if brokers > 0:
        drivers.append(ScoreDriver(
            text=f"{brokers} active data broker {plural(brokers, 'listing')}",
            impact=brokers + 8 if brokers > 5 else brokers + 4,
            category="digital",
        ))

    public_social = len([a for a in pd.digital.social_accounts if is_public(a)])
    if public_social > 0:
        drivers.append(ScoreDriver(
            text=f"{public_social} public social media {plural(public_social, 'account')}",
            impact=public_social * 3,
            category="digital",
        ))

    breaches = len(pd.breaches.records)
    if breaches > 0:
        drivers.append(ScoreDriver(
            text=f"{breaches} confirmed breach {plural(breaches, 'exposure')}",
            impact=breaches * 3,
            category="breach",
        ))

    password_breaches = len([r for r in pd.breaches.records if exposes_password(r)])
    if password_breaches > 0:
        drivers.append(ScoreDriver(
            text=f"Password exposed in {password_breaches} {plural(password_breaches, 'breach', 'breaches')}",
            impact=password_breaches * 5,
            category="breach",
        ))

    for routine in pd.behavioral.routines:
        consistency = routine.consistency or 0
        if consistency > 0.7:
            drivers.append(ScoreDriver(
                text=f"{routine.name or 'Routine'}: {round_half_up(consistency * 100)}% predictability",
                impact=round_half_up(consistency * 10),
                category="behavioral",
            ))

    if any(is_strava(a) for a in pd.digital.social_accounts):
        drivers.append(ScoreDriver(text="Public GPS tracking (Strava)", impact=8, category="behavioral"))

    observations = pd.behavioral.observations
    high_exploit = len([o for o in observations if o.exploitability == "high"])
    if high_exploit > 0:
        drivers.append(ScoreDriver(
            text=f"{high_exploit} high-exploitability {plural(high_exploit, 'observation')}",
            impact=high_exploit * 4,
            category="behavioral",
        ))
    elif observations:
        drivers.append(ScoreDriver(
            text=f"{len(observations)} behavioral {plural(len(observations), 'observation')} documented",
            impact=len(observations) * 2,
            category="behavioral",
        ))

    confirmed = len([a for a in pd.locations.addresses if a.confidence == "confirmed"])
    if confirmed > 0:
        drivers.append(ScoreDriver(
            text=f"{confirmed} confirmed {plural(confirmed, 'address', 'addresses')} in public records",
            impact=confirmed * 4,
            category="physical",
        ))

    drivers.sort(key=lambda d: d.impact, reverse=True)
    return drivers[:MAX_DRIVERS]


def calculate_aegis_score(profile: Union[ProfileData, Dict[str, Any], None]) -> AegisScore:
    """
    Calculates the Aegis Score for a subject profile.

    Args:
        profile: The subject's profile data, as a model or raw dict. None
                 yields the zero score.

    Returns:
        AegisScore: The composite, risk level, factor breakdown and drivers.
    """
    pd = ProfileData.coerce(profile)
    if pd is None:
        return default_score()

    raw = {
        "digital_footprint": _digital_footprint(pd),
        "breach_exposure": _breach_exposure(pd),
        "behavioral_predictability": _behavioral_predictability(pd),
        "physical_opsec": _physical_opsec(pd),
        "network_exposure": _network_exposure(pd),
    }
    factors = _build_factors(raw)
    # Factor scores are rounded for display; the composite uses the unrounded values.
    composite = round_half_up(sum(raw[key] * weight for key, (_, weight) in FACTORS.items()) / 100)
    risk_level = risk_level_for(composite)
    logger.debug("Aegis composite %d (%s)", composite, risk_level)

    return AegisScore(
        composite=composite,
        risk_level=risk_level,
        factors=factors,
        drivers=build_score_drivers(pd),
        calculated_at=datetime.now(timezone.utc),
    )


def load_profile(profile_file: str) -> ProfileData:
    """
    Loads a profile JSON file. Accepts a bare profile or a subject record
    carrying the profile under 'profile_data'.
    """
    raw = load_json_file(profile_file)
    if isinstance(raw, dict) and isinstance(raw.get("profile_data"), dict):
        raw = raw["profile_data"]
    return ProfileData.model_validate(raw)


def risk_color(risk_level: str) -> str:
    return {
        "CRITICAL": "red",
        "HIGH": "dark_orange",
        "MODERATE": "yellow",
    }.get(risk_level.upper(), "green")


def print_factor_table(title: str, factors: Dict[str, FactorScore]) -> None:
    table = Table(title=title)
    table.add_column("Factor", style="cyan")
    table.add_column("Score (0-100)", style="magenta")
    table.add_column("Weight")
    for factor in factors.values():
        table.add_row(factor.label, str(factor.score), f"{factor.weight}%")
    console.print(table)


# --- CLI Application ---

score_app = typer.Typer(
    name="score",
    help="Calculate the Aegis exposure score for a subject profile."
)


@score_app.command("run")
def run_aegis_score(
    profile_file: str = typer.Argument(..., help="Path to the subject's profile JSON file."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Scores a profile and shows the factor breakdown and top drivers.
    """
    try:
        profile = load_profile(profile_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load profile %s: %s", profile_file, e)
        console.print(f"[bold red]Error loading profile:[/bold red] {e}")
        raise typer.Exit(code=1)

    result = calculate_aegis_score(profile)

    if output_file:
        save_or_print_results(result, output_file)
        return

    color = risk_color(result.risk_level)
    console.print(f"\n[bold]Aegis Score:[/bold] [bold {color}]{result.composite} / 100[/bold {color}]")
    console.print(f"  Risk Level: [bold {color}]{result.risk_level}[/bold {color}]\n")
    print_factor_table("Factor Breakdown", result.factors)

    if result.drivers:
        drivers = Table(title="Score Drivers")
        drivers.add_column("Driver")
        drivers.add_column("Impact", style="magenta")
        drivers.add_column("Category", style="dim")
        for driver in result.drivers:
            drivers.add_row(driver.text, str(driver.impact), driver.category)
        console.print(drivers)
