from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# --- General Purpose Models ---


class ProfileModel(BaseModel):
    """
    Base for every profile section.

    Profile JSON is edited by hand and by importers, so explicit nulls are
    dropped before validation (the field default applies instead) and
    unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class ResultModel(BaseModel):
    """Base for computed results: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Profile Data Models ---


class Identity(ProfileModel):
    full_name: str = ""
    aliases: List[Any] = Field(default_factory=list)
    date_of_birth: Optional[str] = None
    age: Optional[int] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None


class Professional(ProfileModel):
    title: Optional[str] = None
    organization: Optional[str] = None
    organization_type: Optional[str] = None
    industry: Optional[str] = None
    linkedin_url: Optional[str] = None
    employment_history: List[Any] = Field(default_factory=list)
    previous_roles: List[Any] = Field(default_factory=list)
    education: List[Any] = Field(default_factory=list)


class Address(ProfileModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    type: Optional[str] = None
    confidence: Optional[str] = None


class Locations(ProfileModel):
    addresses: List[Address] = Field(default_factory=list)


class Enrichment(ProfileModel):
    status: Optional[str] = None
    last_checked: Optional[datetime] = None


class PhoneNumber(ProfileModel):
    number: Optional[str] = None
    type: Optional[str] = None


class EmailAddress(ProfileModel):
    address: Optional[str] = None
    type: Optional[str] = None
    enrichment: Optional[Enrichment] = None


class Contact(ProfileModel):
    phone_numbers: List[PhoneNumber] = Field(default_factory=list)
    email_addresses: List[EmailAddress] = Field(default_factory=list)


class SocialAccount(ProfileModel):
    platform: Optional[str] = None
    username: Optional[str] = None
    handle: Optional[str] = None
    url: Optional[str] = None
    visibility: Optional[str] = None
    followers: Optional[Any] = None
    notes: Optional[str] = None
    last_checked: Optional[datetime] = None


class DataBrokerListing(ProfileModel):
    broker: Optional[str] = None
    status: Optional[str] = None
    url: Optional[str] = None


class Digital(ProfileModel):
    social_accounts: List[SocialAccount] = Field(default_factory=list)
    data_broker_listings: List[DataBrokerListing] = Field(default_factory=list)
    domain_registrations: List[Any] = Field(default_factory=list)


class BreachRecord(ProfileModel):
    breach_name: Optional[str] = None
    severity: Optional[str] = None
    data_types: List[str] = Field(default_factory=list)
    date: Optional[str] = None
    source: Optional[str] = None
    enrichment: Optional[Enrichment] = None


class Breaches(ProfileModel):
    records: List[BreachRecord] = Field(default_factory=list)


class Routine(ProfileModel):
    name: Optional[str] = None
    schedule: Optional[str] = None
    location: Optional[str] = None
    consistency: Optional[float] = None
    data_source: Optional[str] = None


class Observation(ProfileModel):
    description: Optional[str] = None
    exploitability: Optional[str] = None


class Behavioral(ProfileModel):
    routines: List[Routine] = Field(default_factory=list)
    observations: List[Observation] = Field(default_factory=list)
    travel_patterns: List[Any] = Field(default_factory=list)
    digital_behavior: List[Any] = Field(default_factory=list)


class Person(ProfileModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    notes: Optional[str] = None
    # Free-form in the editor: usually a list of {platform, url, visibility}.
    social_media: Optional[Any] = None


class Network(ProfileModel):
    family_members: List[Person] = Field(default_factory=list)
    associates: List[Person] = Field(default_factory=list)


class PublicRecords(ProfileModel):
    properties: List[Any] = Field(default_factory=list)
    corporate_filings: List[Any] = Field(default_factory=list)
    court_records: List[Any] = Field(default_factory=list)
    political_donations: List[Any] = Field(default_factory=list)
    other: List[Any] = Field(default_factory=list)


class ProfileData(ProfileModel):
    """A subject's exposure dossier. Every section is optional."""

    identity: Identity = Field(default_factory=Identity)
    professional: Professional = Field(default_factory=Professional)
    locations: Locations = Field(default_factory=Locations)
    contact: Contact = Field(default_factory=Contact)
    digital: Digital = Field(default_factory=Digital)
    breaches: Breaches = Field(default_factory=Breaches)
    behavioral: Behavioral = Field(default_factory=Behavioral)
    network: Network = Field(default_factory=Network)
    public_records: PublicRecords = Field(default_factory=PublicRecords)
    notes: Optional[Any] = None

    @classmethod
    def coerce(
        cls, profile: Optional[Union["ProfileData", Dict[str, Any]]]
    ) -> Optional["ProfileData"]:
        """Accepts a model, a raw dict or None (returned unchanged)."""
        if profile is None or isinstance(profile, ProfileData):
            return profile
        return cls.model_validate(profile)


class CaseRef(ProfileModel):
    name: Optional[str] = None
    type: Optional[str] = None


class SubjectRecord(ProfileModel):
    """A subject row as delivered by the data-access layer."""

    id: Union[int, str]
    name: Optional[str] = None
    profile_data: ProfileData = Field(default_factory=ProfileData)
    cases: Optional[CaseRef] = None
    updated_at: Optional[datetime] = None
    data_completeness: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_case_list(cls, data: Any) -> Any:
        # Joined queries sometimes return the case relation as a list.
        if isinstance(data, dict) and isinstance(data.get("cases"), list):
            data = dict(data)
            data["cases"] = data["cases"][0] if data["cases"] else None
        return data


# --- Profile Completeness Models ---


class CompletenessResult(ResultModel):
    score: int
    details: Dict[str, bool] = Field(default_factory=dict)
    missing: List[str] = Field(default_factory=list)


# --- Aegis Score Models ---


class FactorScore(ResultModel):
    score: int
    weight: int
    label: str


class ScoreDriver(ResultModel):
    text: str
    impact: int
    category: str


class AegisScore(ResultModel):
    """Composite exposure score for a single subject."""

    composite: int
    risk_level: str
    factors: Dict[str, FactorScore]
    drivers: List[ScoreDriver] = Field(default_factory=list)
    calculated_at: Optional[datetime] = None


class RemediationOption(ResultModel):
    id: str
    label: str
    description: str = ""
    score_reduction: int
    affected_factor: str
    category: str
    enabled: bool = False


class SimulatedScore(ResultModel):
    composite: int
    risk_level: str
    factors: Dict[str, FactorScore]
    reduction: int


# --- CrossWire Models ---


class OverlapMatch(ResultModel):
    type: str
    label: str
    detail: str


class OverlapResult(ResultModel):
    subject: SubjectRecord
    case_name: str
    case_type: str
    match_count: int
    matches: List[OverlapMatch] = Field(default_factory=list)


# --- Case Priority Models ---


class CasePriorityResult(ResultModel):
    priority: str
    score: int
    reasons: List[str] = Field(default_factory=list)


# --- Freshness, Anomaly and Benchmark Models ---


class FreshnessResult(ResultModel):
    status: str
    days_since: int


class ProfileAnomaly(ResultModel):
    type: str
    section: str
    description: str
    severity: str


class BenchmarkBucket(ResultModel):
    label: str
    low: int
    high: int
    count: int = 0


class BenchmarkResult(ResultModel):
    insufficient: bool = False
    total_assessments: int
    percentile: Optional[int] = None
    average: Optional[int] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    buckets: List[BenchmarkBucket] = Field(default_factory=list)
    current_bucket: int = -1


class HeatmapCell(ResultModel):
    intensity: float = 0.0
    activities: List[str] = Field(default_factory=list)


# --- Application Configuration Models ---


class CrosswireConfig(BaseModel):
    max_candidates: int = 500


class AppConfig(BaseModel):
    app_name: str = "Aegis Intel"
    version: str = "1.0.0"
    log_level: str = "INFO"
    crosswire: CrosswireConfig = Field(default_factory=CrosswireConfig)
