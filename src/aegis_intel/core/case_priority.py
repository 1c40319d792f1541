"""
Module for case triage.

Combines the Aegis Scores of a case's subjects with breach volume, data
staleness, profile completeness and the case type into a single priority
tier, with human-readable reasons for the tiers that were hit.
"""

import typer
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from pydantic import ValidationError
from .schemas import AegisScore, CaseRef, CasePriorityResult, SubjectRecord
from .utils import console, load_json_file, save_or_print_results
from .aegis_score import calculate_aegis_score
from .data_freshness import days_since
from .crosswire import load_subjects

logger = logging.getLogger(__name__)

CASE_TYPE_WEIGHTS = {"EP": 15, "CT": 10, "CI": 5}
DEFAULT_CASE_TYPE_WEIGHT = 5

PRIORITY_THRESHOLDS = (
    (75, "critical"),
    (55, "high"),
    (30, "routine"),
)

LOW_COMPLETENESS = 40
HIGH_AEGIS = 55


def _composite(value: Union[AegisScore, int, float, None]) -> float:
    if value is None:
        return 0
    if isinstance(value, AegisScore):
        return value.composite
    return value


def _score_aegis(max_aegis: float, reasons: List[str]) -> int:
    if max_aegis >= 75:
        reasons.append("Critical Aegis score")
        return 35
    if max_aegis >= 55:
        reasons.append("High Aegis score")
        return 25
    if max_aegis >= 35:
        reasons.append("Moderate Aegis score")
        return 15
    return 5 if max_aegis > 0 else 0


def _score_breaches(total: int, reasons: List[str]) -> int:
    if total >= 10:
        reasons.append(f"{total} breach records")
        return 20
    if total >= 5:
        reasons.append(f"{total} breach records")
        return 12
    return 5 if total > 0 else 0


def _score_staleness(max_stale_days: int, reasons: List[str]) -> int:
    if max_stale_days > 90:
        reasons.append("Stale profile data")
        return 15
    return 8 if max_stale_days > 30 else 0


def calculate_case_priority(
    case_data: Union[CaseRef, Dict[str, Any], None],
    subjects: Optional[Iterable[Union[SubjectRecord, Dict[str, Any]]]],
    aegis_scores: Optional[Mapping[Any, Union[AegisScore, int, float, None]]],
    now: Optional[datetime] = None,
) -> CasePriorityResult:
    """
    Calculates the triage priority of a case.

    Args:
        case_data: The case (only its type is used).
        subjects: The subjects attached to the case.
        aegis_scores: Aegis composite (or full AegisScore) per subject id.
        now: Reference time for staleness; defaults to the current time.

    Returns:
        CasePriorityResult: Priority tier, 0-100 score and reasons.
    """
    records = [
        s if isinstance(s, SubjectRecord) else SubjectRecord.model_validate(s)
        for s in (subjects or [])
    ]
    # Ids are matched as strings, so maps keyed from JSON find integer ids.
    scores = {str(key): _composite(value) for key, value in (aegis_scores or {}).items()}
    reasons: List[str] = []
    score = 0

    max_aegis = max([scores.get(str(s.id), 0) for s in records] + [0])
    score += _score_aegis(max_aegis, reasons)

    total_breaches = sum(len(s.profile_data.breaches.records) for s in records)
    score += _score_breaches(total_breaches, reasons)

    stale_days = [days_since(s.updated_at, now) for s in records if s.updated_at]
    score += _score_staleness(max(stale_days + [0]), reasons)

    for s in records:
        if (s.data_completeness or 0) < LOW_COMPLETENESS and scores.get(str(s.id), 0) >= HIGH_AEGIS:
            score += 15
            reasons.append("High risk with incomplete profile")
            break

    if isinstance(case_data, dict):
        case_type = case_data.get("type")
    else:
        case_type = case_data.type if case_data else None
    type_weight = CASE_TYPE_WEIGHTS.get(case_type, DEFAULT_CASE_TYPE_WEIGHT)
    score += type_weight
    if type_weight >= 15:
        reasons.append("EP case type")

    score = min(score, 100)
    priority = next(
        (tier for threshold, tier in PRIORITY_THRESHOLDS if score >= threshold), "low"
    )
    logger.debug("Case priority %s (%d): %s", priority, score, reasons)
    return CasePriorityResult(priority=priority, score=score, reasons=reasons)


# --- CLI Application ---

priority_app = typer.Typer(
    name="priority",
    help="Triage a case from its subjects' exposure."
)


@priority_app.command("run")
def run_case_priority(
    case_file: str = typer.Argument(..., help="Path to the case JSON file (name, type)."),
    subjects_file: str = typer.Argument(..., help="Path to a JSON list of the case's subject records."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Scores every subject and calculates the case priority.
    """
    try:
        case = CaseRef.model_validate(load_json_file(case_file))
        subjects = load_subjects(subjects_file)
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Could not load case input: %s", e)
        console.print(f"[bold red]Error loading case input:[/bold red] {e}")
        raise typer.Exit(code=1)

    aegis_scores = {s.id: calculate_aegis_score(s.profile_data) for s in subjects}
    result = calculate_case_priority(case, subjects, aegis_scores)

    if output_file:
        save_or_print_results(result, output_file)
        return

    colors = {"critical": "red", "high": "dark_orange", "routine": "blue", "low": "green"}
    color = colors[result.priority]
    console.print(f"\n[bold]Case Priority for {case.name or 'case'}:[/bold] [bold {color}]{result.priority.upper()}[/bold {color}] ({result.score}/100)")
    for reason in result.reasons:
        console.print(f"  - {reason}")
