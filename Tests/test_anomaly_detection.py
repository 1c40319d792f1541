import json
import pytest
from typer.testing import CliRunner

from aegis_intel.cli import app
from aegis_intel.core.anomaly_detection import detect_anomalies

runner = CliRunner()


@pytest.fixture
def previous():
    return {
        "digital": {
            "social_accounts": [{"platform": "Instagram", "handle": "jane"}],
            "data_broker_listings": [{"broker": "Spokeo", "status": "removed"}],
        },
        "breaches": {"records": [{"breach_name": "LinkedIn"}]},
        "locations": {"addresses": [{"street": "1 Main St", "city": "Austin", "state": "TX"}]},
        "contact": {
            "phone_numbers": [{"number": "512-555-0100"}],
            "email_addresses": [{"address": "jane@example.com"}],
        },
        "network": {"associates": [{"name": "Bob Smith"}]},
    }


@pytest.fixture
def current(previous):
    return {
        "digital": {
            "social_accounts": [
                {"platform": "Instagram", "handle": "jane"},
                {"platform": "Strava", "handle": "janeruns"},
            ],
            "data_broker_listings": [{"broker": "spokeo", "status": "active"}],
        },
        "breaches": {"records": [{"breach_name": "linkedin"}, {"breach_name": "Adobe"}]},
        "locations": {"addresses": [{"street": "9 Oak Ave", "city": "Dallas", "state": "TX"}]},
        "contact": {
            "phone_numbers": [{"number": "512-555-0199"}],
            "email_addresses": [{"address": "JANE@example.com"}, {"address": "j.doe@work.com"}],
        },
        "network": {
            "associates": [{"name": "bob smith"}],
            "family_members": [{"name": "Amy Doe"}],
        },
    }


def test_identical_snapshots_have_no_changes(previous):
    assert detect_anomalies(previous, previous) == []


def test_missing_snapshot_has_no_changes(previous):
    assert detect_anomalies(previous, None) == []
    assert detect_anomalies(None, previous) == []


def test_detects_every_change(current, previous):
    anomalies = detect_anomalies(current, previous)

    assert [(a.type, a.severity) for a in anomalies] == [
        ("new_social", "medium"),
        ("new_breach", "high"),
        ("new_address", "medium"),
        ("removed_address", "low"),
        ("new_phone", "medium"),
        ("removed_phone", "low"),
        ("new_email", "medium"),
        ("new_person", "medium"),
        ("broker_status_change", "high"),
    ]
    descriptions = [a.description for a in anomalies]
    assert "New social account: Strava (janeruns)" in descriptions
    assert "New breach detected: Adobe" in descriptions
    assert "New address added: 9 oak ave,dallas,tx" in descriptions
    assert "New family member: Amy Doe" in descriptions
    assert "New email address: j.doe@work.com" in descriptions


def test_broker_deactivation_is_low_severity():
    before = {"digital": {"data_broker_listings": [{"broker": "Spokeo", "status": "active"}]}}
    after = {"digital": {"data_broker_listings": [{"broker": "Spokeo", "status": "removed"}]}}

    anomalies = detect_anomalies(after, before)

    assert len(anomalies) == 1
    assert anomalies[0].type == "broker_status_change"
    assert anomalies[0].severity == "low"


def test_new_broker_is_not_a_status_change():
    after = {"digital": {"data_broker_listings": [{"broker": "Radaris", "status": "active"}]}}
    assert detect_anomalies(after, {}) == []


def test_cli_diff(tmp_path, current, previous):
    current_file = tmp_path / "current.json"
    previous_file = tmp_path / "previous.json"
    current_file.write_text(json.dumps(current))
    previous_file.write_text(json.dumps(previous))
    output_file = tmp_path / "changes.json"

    result = runner.invoke(
        app, ["anomalies", "diff", str(current_file), str(previous_file), "-o", str(output_file)]
    )

    assert result.exit_code == 0
    data = json.loads(output_file.read_text())
    assert len(data) == 9
    assert data[1] == {
        "type": "new_breach",
        "section": "breaches",
        "description": "New breach detected: Adobe",
        "severity": "high",
    }
