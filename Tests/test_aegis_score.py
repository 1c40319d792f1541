import copy
import json
import pytest
from typer.testing import CliRunner

from aegis_intel.core.aegis_score import (
    FACTORS,
    MAX_DRIVERS,
    build_score_drivers,
    calculate_aegis_score,
    risk_level_for,
)
from aegis_intel.core.schemas import AegisScore, ProfileData
from aegis_intel.cli import app

runner = CliRunner()


@pytest.fixture
def baseline_profile():
    """Digital 30, breach 45, physical 30; everything else empty."""
    return {
        "digital": {
            "social_accounts": [
                {"platform": "Instagram", "visibility": "private"},
                {"platform": "Facebook", "visibility": "private"},
                {"platform": "X", "visibility": "private"},
            ],
            "data_broker_listings": [{"broker": "Spokeo", "status": "active"}],
        },
        "breaches": {
            "records": [
                {"breach_name": "LinkedIn", "severity": "high", "data_types": ["password"]}
            ]
        },
        "locations": {
            "addresses": [{"city": "Austin", "state": "TX", "confidence": "confirmed"}]
        },
    }


@pytest.fixture
def rich_profile():
    return {
        "identity": {"full_name": "Jane Doe"},
        "digital": {
            "social_accounts": [
                {"platform": "Strava", "visibility": "public"},
                {"platform": "Instagram", "visibility": "public"},
                {"platform": "Venmo", "visibility": "public"},
            ],
            "data_broker_listings": [
                {"broker": "Spokeo", "status": "active"},
                {"broker": "Whitepages", "status": "active"},
                {"broker": "BeenVerified", "status": "removed"},
            ],
        },
        "breaches": {
            "records": [
                {"breach_name": "LinkedIn", "severity": "high", "data_types": ["Passwords", "emails"]},
                {"breach_name": "Adobe", "severity": "medium", "data_types": ["emails"]},
            ]
        },
        "behavioral": {
            "routines": [
                {"name": "Morning run", "schedule": "Mon-Fri 6am", "consistency": 0.9},
                {"name": "Gym", "schedule": "Sat 10am", "consistency": 0.5},
            ],
            "observations": [
                {"description": "Leaves door unlocked", "exploitability": "high"},
                {"description": "Posts travel plans", "exploitability": "low"},
            ],
        },
        "locations": {
            "addresses": [
                {"city": "Austin", "state": "TX", "type": "primary", "confidence": "confirmed"},
                {"city": "Dallas", "state": "TX", "type": "secondary", "confidence": "probable"},
            ]
        },
        "public_records": {"properties": [{"address": "1 Main St"}]},
        "network": {
            "family_members": [
                {"name": "John Doe", "notes": "Public Instagram with family photos"},
                {"name": "Amy Doe", "social_media": [{"platform": "tiktok", "visibility": "public"}]},
                {"name": "Sam Doe"},
            ],
            "associates": [{"name": "Bob Smith"}],
        },
    }


# --- Composite and factors ---


def test_baseline_scenario_composite(baseline_profile):
    """Digital 30, breach 45, physical 30 gives composite 21 (LOW)."""
    result = calculate_aegis_score(baseline_profile)

    assert result.factors["digital_footprint"].score == 30
    assert result.factors["breach_exposure"].score == 45
    assert result.factors["behavioral_predictability"].score == 0
    assert result.factors["physical_opsec"].score == 30
    assert result.factors["network_exposure"].score == 0
    assert result.composite == 21
    assert result.risk_level == "LOW"


def test_public_accounts_count_toward_both_terms(baseline_profile):
    """Two public accounts score 2*8 + 2*12 plus the broker."""
    baseline_profile["digital"]["social_accounts"] = [
        {"platform": "Instagram", "visibility": "public"},
        {"platform": "Facebook", "visibility": "public"},
    ]
    result = calculate_aegis_score(baseline_profile)

    assert result.factors["digital_footprint"].score == 46
    assert result.composite == 25
    assert result.risk_level == "LOW"


def test_none_profile_returns_zero_score():
    result = calculate_aegis_score(None)

    assert result.composite == 0
    assert result.risk_level == "LOW"
    assert result.drivers == []
    assert list(result.factors) == list(FACTORS)
    assert all(f.score == 0 for f in result.factors.values())


def test_empty_and_null_sections_score_zero():
    result = calculate_aegis_score({"digital": None, "breaches": {"records": None}})
    assert result.composite == 0
    assert result.risk_level == "LOW"


def test_factor_shape_and_weights(rich_profile):
    result = calculate_aegis_score(rich_profile)

    assert set(result.factors) == {
        "digital_footprint",
        "breach_exposure",
        "behavioral_predictability",
        "physical_opsec",
        "network_exposure",
    }
    assert sum(f.weight for f in result.factors.values()) == 100
    assert [f.weight for f in result.factors.values()] == [25, 20, 25, 15, 15]


def test_composite_matches_weighted_factors(rich_profile):
    result = calculate_aegis_score(rich_profile)
    weighted = sum(f.score * f.weight for f in result.factors.values()) / 100
    assert abs(result.composite - weighted) <= 0.5


def test_rich_profile_factor_values(rich_profile):
    result = calculate_aegis_score(rich_profile)

    # 3*8 + 3*12 + 2*6
    assert result.factors["digital_footprint"].score == 72
    # 2*10 + 1*15 + 20 (case-insensitive password match)
    assert result.factors["breach_exposure"].score == 55
    # 0.7*80 + 2*5 + 15 (Strava) + 2*3 + 1*8
    assert result.factors["behavioral_predictability"].score == 95
    # 1*20 + 2*10 + 1*12
    assert result.factors["physical_opsec"].score == 52
    # 2 publicly exposed * 15 + 3*5 + 1*5
    assert result.factors["network_exposure"].score == 50


def test_scores_are_bounded():
    heavy = {
        "digital": {
            "social_accounts": [{"platform": "Strava", "visibility": "public"}] * 20,
            "data_broker_listings": [{"broker": "X", "status": "active"}] * 30,
        },
        "breaches": {"records": [{"severity": "high", "data_types": ["password"]}] * 15},
        "behavioral": {"routines": [{"consistency": 1.0}] * 10},
        "locations": {"addresses": [{"confidence": "confirmed"}] * 10},
        "network": {"family_members": [{"notes": "public"}] * 10},
    }
    result = calculate_aegis_score(heavy)

    assert 0 <= result.composite <= 100
    assert all(0 <= f.score <= 100 for f in result.factors.values())
    assert result.composite == 100
    assert result.risk_level == "CRITICAL"


def test_adding_exposure_never_lowers_score(rich_profile):
    before = calculate_aegis_score(rich_profile)
    more = copy.deepcopy(rich_profile)
    more["digital"]["data_broker_listings"].append({"broker": "Radaris", "status": "active"})
    more["breaches"]["records"].append({"breach_name": "Dropbox", "severity": "high"})
    after = calculate_aegis_score(more)

    assert after.factors["digital_footprint"].score >= before.factors["digital_footprint"].score
    assert after.factors["breach_exposure"].score >= before.factors["breach_exposure"].score
    assert after.composite >= before.composite


def test_one_more_active_broker_never_lowers_score(rich_profile):
    before = calculate_aegis_score(rich_profile)
    more = copy.deepcopy(rich_profile)
    more["digital"]["data_broker_listings"].append({"broker": "Radaris", "status": "active"})
    after = calculate_aegis_score(more)

    assert after.factors["digital_footprint"].score >= before.factors["digital_footprint"].score
    assert after.composite >= before.composite
    for key in FACTORS:
        if key != "digital_footprint":
            assert after.factors[key] == before.factors[key]


def test_composite_uses_unrounded_factors():
    # 0.40625 * 80 + 5 = 37.5 behavioral; 37.5 * 0.25 = 9.375
    result = calculate_aegis_score({"behavioral": {"routines": [{"consistency": 0.40625}]}})

    assert result.factors["behavioral_predictability"].score == 38
    assert result.composite == 9


def test_scoring_is_deterministic(rich_profile):
    first = calculate_aegis_score(rich_profile)
    second = calculate_aegis_score(rich_profile)

    assert first.composite == second.composite
    assert first.factors == second.factors
    assert first.drivers == second.drivers


def test_scoring_does_not_mutate_input(rich_profile):
    snapshot = copy.deepcopy(rich_profile)
    calculate_aegis_score(rich_profile)
    assert rich_profile == snapshot


def test_accepts_model_input(rich_profile):
    from_dict = calculate_aegis_score(rich_profile)
    from_model = calculate_aegis_score(ProfileData.model_validate(rich_profile))
    assert from_dict.composite == from_model.composite


@pytest.mark.parametrize(
    "composite, level",
    [(0, "LOW"), (34, "LOW"), (35, "MODERATE"), (54, "MODERATE"), (55, "HIGH"), (74, "HIGH"), (75, "CRITICAL"), (100, "CRITICAL")],
)
def test_risk_level_thresholds(composite, level):
    assert risk_level_for(composite) == level


def test_gps_signal_from_notes():
    profile = {"digital": {"social_accounts": [{"platform": "Garmin", "notes": "Shares GPS tracks"}]}}
    result = calculate_aegis_score(profile)
    # 15 for the GPS signal; no routines or observations
    assert result.factors["behavioral_predictability"].score == 15


# --- Drivers ---


def test_drivers_sorted_and_capped(rich_profile):
    drivers = build_score_drivers(rich_profile)

    impacts = [d.impact for d in drivers]
    assert impacts == sorted(impacts, reverse=True)
    assert len(drivers) <= MAX_DRIVERS


def test_driver_texts(rich_profile):
    drivers = {d.text: d for d in build_score_drivers(rich_profile)}

    assert drivers["2 active data broker listings"].impact == 6
    assert drivers["3 public social media accounts"].impact == 9
    assert drivers["2 confirmed breach exposures"].impact == 6
    assert drivers["Password exposed in 1 breach"].impact == 5
    assert drivers["Morning run: 90% predictability"].impact == 9
    assert drivers["Public GPS tracking (Strava)"].impact == 8
    assert drivers["1 high-exploitability observation"].impact == 4
    assert drivers["1 confirmed address in public records"].impact == 4
    # The 0.5 consistency routine is not a driver.
    assert not any(t.startswith("Gym") for t in drivers)


def test_large_broker_count_driver_impact():
    profile = {"digital": {"data_broker_listings": [{"broker": f"b{i}", "status": "active"} for i in range(7)]}}
    drivers = build_score_drivers(profile)
    assert drivers[0].impact == 15


def test_plain_observations_driver_when_none_high():
    profile = {"behavioral": {"observations": [{"exploitability": "low"}, {"exploitability": "medium"}]}}
    drivers = build_score_drivers(profile)
    assert [d.text for d in drivers] == ["2 behavioral observations documented"]
    assert drivers[0].impact == 4


def test_driver_ties_keep_discovery_order():
    profile = {
        "digital": {"social_accounts": [{"platform": "X", "visibility": "public"}]},
        "breaches": {"records": [{"breach_name": "A"}]},
    }
    drivers = build_score_drivers(profile)
    assert [d.category for d in drivers] == ["digital", "breach"]


def test_drivers_capped_at_ten():
    profile = {
        "behavioral": {"routines": [{"name": f"R{i}", "consistency": 0.8} for i in range(15)]}
    }
    assert len(build_score_drivers(profile)) == 10


# --- CLI ---


def test_cli_run_writes_json(tmp_path, baseline_profile):
    profile_file = tmp_path / "profile.json"
    profile_file.write_text(json.dumps({"id": 1, "profile_data": baseline_profile}))
    output_file = tmp_path / "score.json"

    result = runner.invoke(app, ["score", "run", str(profile_file), "--output", str(output_file)])

    assert result.exit_code == 0
    data = json.loads(output_file.read_text())
    assert data["composite"] == 21
    assert data["riskLevel"] == "LOW"
    assert data["factors"]["breach_exposure"]["score"] == 45
    assert AegisScore.model_validate(data).composite == 21


def test_cli_run_prints_table(tmp_path, baseline_profile):
    profile_file = tmp_path / "profile.json"
    profile_file.write_text(json.dumps(baseline_profile))

    result = runner.invoke(app, ["score", "run", str(profile_file)])

    assert result.exit_code == 0
    assert "21 / 100" in result.stdout
    assert "Factor Breakdown" in result.stdout


def test_cli_run_missing_file(tmp_path):
    result = runner.invoke(app, ["score", "run", str(tmp_path / "missing.json")])
    assert result.exit_code == 1
    assert "Error loading profile" in result.stdout
