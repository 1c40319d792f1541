import pytest

from aegis_intel.core.indicators import (
    broadcasts_gps,
    consistency_percent,
    exposes_password,
    family_has_public_social,
    family_publicly_exposed,
    has_gps_signal,
    is_public_payment_feed,
    normalize_phone,
)
from aegis_intel.core.schemas import BreachRecord, Person, SocialAccount


@pytest.mark.parametrize(
    "number, expected",
    [
        ("+1 (512) 555-0100", "5125550100"),
        ("512.555.0100", "5125550100"),
        ("555-0100", "5550100"),
        ("x1234", None),
        (None, None),
    ],
)
def test_normalize_phone(number, expected):
    assert normalize_phone(number) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0.0), (0.85, 85.0), (1, 100), (85, 85)],
)
def test_consistency_percent(value, expected):
    assert consistency_percent(value) == pytest.approx(expected)


def test_password_exposure_is_case_insensitive():
    assert exposes_password(BreachRecord(data_types=["Emails", "Hashed Passwords"]))
    assert not exposes_password(BreachRecord(data_types=["Emails"]))
    assert not exposes_password(BreachRecord())


def test_gps_signal_versus_broadcast():
    garmin = SocialAccount(platform="Garmin")
    strava = SocialAccount(platform="STRAVA")
    noted = SocialAccount(platform="Facebook", notes="posts GPS maps")

    assert has_gps_signal(strava) and has_gps_signal(noted)
    assert not has_gps_signal(garmin)
    assert broadcasts_gps(garmin) and broadcasts_gps(strava) and broadcasts_gps(noted)


def test_public_payment_feed():
    assert is_public_payment_feed(SocialAccount(platform="Venmo", visibility="public"))
    assert not is_public_payment_feed(SocialAccount(platform="Venmo", visibility="friends"))
    assert not is_public_payment_feed(SocialAccount(platform="Instagram", visibility="public"))


def test_family_exposure_variants():
    linked = Person(name="Amy", social_media=[{"platform": "tiktok", "url": "https://tiktok.com/@amy"}])
    public = Person(name="Sam", social_media=[{"visibility": "public"}, "not-a-link"])
    noted = Person(name="John", notes="Public Facebook profile")
    quiet = Person(name="Kim", social_media="instagram")

    assert family_has_public_social(linked)
    assert not family_publicly_exposed(linked)
    assert family_publicly_exposed(public) and family_has_public_social(public)
    assert family_publicly_exposed(noted) and family_has_public_social(noted)
    assert not family_publicly_exposed(quiet) and not family_has_public_social(quiet)
