"""
What-if remediation simulation.

Applies the enabled remediation options to a previously computed Aegis
Score. This approximates the effect of remediation; it does not re-run the
scorer against a modified profile.
"""

import logging
from typing import Any, Dict, Iterable, Union

from .aegis_score import risk_level_for
from .schemas import AegisScore, RemediationOption, SimulatedScore
from .utils import round_half_up

logger = logging.getLogger(__name__)


def simulate_remediation(
    base_score: Union[AegisScore, Dict[str, Any]],
    options: Iterable[Union[RemediationOption, Dict[str, Any]]],
) -> SimulatedScore:
    """
    Simulates the score after applying every enabled option.

    Each option's reduction is subtracted from the composite. Per factor, the
    summed composite-point reduction is scaled back to the factor's own
    0-100 range through its weight. Neither value drops below zero.
    """
    if not isinstance(base_score, AegisScore):
        base_score = AegisScore.model_validate(base_score)

    total_reduction = 0
    factor_reductions: Dict[str, int] = {}
    for option in options:
        if not isinstance(option, RemediationOption):
            option = RemediationOption.model_validate(option)
        if not option.enabled:
            continue
        total_reduction += option.score_reduction
        factor_reductions[option.affected_factor] = (
            factor_reductions.get(option.affected_factor, 0) + option.score_reduction
        )

    composite = max(0, base_score.composite - total_reduction)

    factors = {key: factor.model_copy() for key, factor in base_score.factors.items()}
    for key, reduction in factor_reductions.items():
        factor = factors.get(key)
        if factor is None or factor.weight <= 0:
            logger.debug("Skipping reduction for unknown or unweighted factor '%s'", key)
            continue
        local_reduction = round_half_up(reduction / (factor.weight / 100))
        factor.score = min(100, max(0, factor.score - local_reduction))

    return SimulatedScore(
        composite=composite,
        risk_level=risk_level_for(composite),
        factors=factors,
        reduction=total_reduction,
    )
