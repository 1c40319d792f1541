"""
Exposure indicators.

Keyword lists and the predicates built on them. Scoring, remediation and
overlap detection all match free-text profile fields against these lists,
so they live in one place and are versioned together.
"""

import re
from typing import Iterable, List, Optional

from .schemas import BreachRecord, Person, SocialAccount

INDICATORS_VERSION = "2024.1"

PASSWORD_KEYWORDS = ("password",)

# Narrow GPS signal used by the behavioral factor and its score driver.
GPS_SCORE_PLATFORMS = ("strava",)
GPS_SCORE_NOTE_KEYWORDS = ("gps",)

# Wider net used when recommending GPS-related remediation.
GPS_BROADCAST_PLATFORMS = ("strava", "garmin", "fitbit", "alltrails")
GPS_BROADCAST_NOTE_KEYWORDS = ("gps", "fitness", "tracking")

PAYMENT_FEED_PLATFORMS = ("venmo",)

PUBLIC_NOTE_KEYWORDS = ("public",)

PHONE_MATCH_DIGITS = 10
PHONE_MIN_DIGITS = 7

_NON_DIGITS = re.compile(r"\D")


def _lower(value: Optional[str]) -> str:
    return (value or "").lower()


def mentions_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """Case-insensitive substring test against a keyword list."""
    low = _lower(text)
    return any(keyword in low for keyword in keywords)


def is_public(account: SocialAccount) -> bool:
    return account.visibility == "public"


def exposes_password(record: BreachRecord) -> bool:
    """True when any of the breach's exposed data types is a password."""
    return any(mentions_any(data_type, PASSWORD_KEYWORDS) for data_type in record.data_types)


def has_gps_signal(account: SocialAccount) -> bool:
    """GPS signal for scoring: a Strava account, or notes mentioning GPS."""
    return mentions_any(account.platform, GPS_SCORE_PLATFORMS) or mentions_any(
        account.notes, GPS_SCORE_NOTE_KEYWORDS
    )


def is_strava(account: SocialAccount) -> bool:
    return mentions_any(account.platform, GPS_SCORE_PLATFORMS)


def broadcasts_gps(account: SocialAccount) -> bool:
    """Fitness/tracking platforms, or notes describing GPS or fitness tracking."""
    return mentions_any(account.platform, GPS_BROADCAST_PLATFORMS) or mentions_any(
        account.notes, GPS_BROADCAST_NOTE_KEYWORDS
    )


def is_public_payment_feed(account: SocialAccount) -> bool:
    return mentions_any(account.platform, PAYMENT_FEED_PLATFORMS) and is_public(account)


def _social_links(person: Person) -> List[dict]:
    links = person.social_media
    if not isinstance(links, list):
        return []
    return [link for link in links if isinstance(link, dict)]


def family_publicly_exposed(person: Person) -> bool:
    """Scoring variant: notes say 'public' or a linked account is public."""
    if mentions_any(person.notes, PUBLIC_NOTE_KEYWORDS):
        return True
    return any(link.get("visibility") == "public" for link in _social_links(person))


def family_has_public_social(person: Person) -> bool:
    """Remediation variant: any linked account that is public or has a URL."""
    if any(
        link.get("visibility") == "public" or link.get("url")
        for link in _social_links(person)
    ):
        return True
    return mentions_any(person.notes, PUBLIC_NOTE_KEYWORDS)


def normalize_phone(number: Optional[str]) -> Optional[str]:
    """
    Reduces a phone number to its last ten digits.

    Returns None when fewer than seven digits remain, which filters out
    extensions and partial numbers.
    """
    digits = _NON_DIGITS.sub("", number or "")[-PHONE_MATCH_DIGITS:]
    if len(digits) < PHONE_MIN_DIGITS:
        return None
    return digits


def consistency_percent(consistency: Optional[float]) -> float:
    """
    Normalizes a routine consistency to a 0-100 scale.

    Importers record consistency either as a ratio (0.85) or a percent (85);
    anything above 1 is taken as already being a percent.
    """
    if consistency is None:
        return 0.0
    return consistency if consistency > 1 else consistency * 100
