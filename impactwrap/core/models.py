"""
Domain records shared by ingestion, storage and the API.

DonorRecord is the validated shape produced by the CSV validator and
consumed by the batch policy. StoredDonor adds the identity the store
assigns. OrganizationProfile carries branding, privacy defaults and the
optional impact coefficient overrides.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional


DEFAULT_PRIMARY_COLOR = "#0ea5e9"
DEFAULT_SECONDARY_COLOR = "#22c55e"
DEFAULT_THANK_YOU_MESSAGE = (
    "Thank you for your generous support! Your contributions make a "
    "meaningful difference in our community."
)
DEFAULT_PRIVACY_POLICY = (
    "We respect your privacy and will only use your information in "
    "accordance with your preferences."
)

COEFFICIENT_FIELDS = (
    "dollars_per_meal",
    "meals_per_person",
    "pounds_per_meal",
    "co2_per_pound",
    "water_per_pound",
)


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass
class DonorRecord:
    """
    Validated donor row, ready for duplicate checks and insertion.

    Privacy flags left as None fall back to the organization defaults
    when the public impact page is rendered.
    """
    first_name: str
    last_name: str
    email: str
    total_giving: Decimal
    organization_id: Optional[int] = None

    first_gift_date: Optional[date] = None
    last_gift_date: Optional[date] = None
    largest_gift: Optional[Decimal] = None
    gift_count: Optional[int] = None

    impact_url: Optional[str] = None

    # Privacy controls
    is_anonymous: Optional[bool] = None
    show_full_name: Optional[bool] = None
    show_email: Optional[bool] = None
    allow_sharing: Optional[bool] = None
    opt_out_date: Optional[date] = None

    # 1-based data row in the upload, for error reporting only
    source_row: Optional[int] = field(default=None, compare=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def with_organization(self, organization_id: int) -> "DonorRecord":
        return replace(self, organization_id=organization_id)


@dataclass
class StoredDonor(DonorRecord):
    """Donor as persisted, with store-assigned identity and timestamps."""
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "totalGiving": _num(self.total_giving),
            "firstGiftDate": _iso(self.first_gift_date),
            "lastGiftDate": _iso(self.last_gift_date),
            "largestGift": _num(self.largest_gift),
            "giftCount": self.gift_count,
            "organizationId": self.organization_id,
            "impactUrl": self.impact_url,
            "isAnonymous": self.is_anonymous,
            "showFullName": self.show_full_name,
            "showEmail": self.show_email,
            "allowSharing": self.allow_sharing,
            "optOutDate": _iso(self.opt_out_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class OrganizationProfile:
    """Food bank branding, messaging, privacy defaults and coefficients."""
    name: str
    id: int = 0
    logo: Optional[str] = None
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    thank_you_message: str = DEFAULT_THANK_YOU_MESSAGE
    thank_you_video_url: Optional[str] = None

    # Privacy defaults
    default_anonymous_donors: bool = False
    default_show_full_name: bool = True
    default_show_email: bool = False
    default_allow_sharing: bool = True
    privacy_policy_text: str = DEFAULT_PRIVACY_POLICY

    # Impact coefficient overrides (None = engine default)
    dollars_per_meal: Optional[Decimal] = None
    meals_per_person: Optional[Decimal] = None
    pounds_per_meal: Optional[Decimal] = None
    co2_per_pound: Optional[Decimal] = None
    water_per_pound: Optional[Decimal] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def coefficient_values(self) -> Dict[str, Optional[Decimal]]:
        return {name: getattr(self, name) for name in COEFFICIENT_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "logo": data["logo"],
            "primaryColor": data["primary_color"],
            "secondaryColor": data["secondary_color"],
            "thankYouMessage": data["thank_you_message"],
            "thankYouVideoUrl": data["thank_you_video_url"],
            "defaultAnonymousDonors": data["default_anonymous_donors"],
            "defaultShowFullName": data["default_show_full_name"],
            "defaultShowEmail": data["default_show_email"],
            "defaultAllowSharing": data["default_allow_sharing"],
            "privacyPolicyText": data["privacy_policy_text"],
            "dollarsPerMeal": _num(self.dollars_per_meal),
            "mealsPerPerson": _num(self.meals_per_person),
            "poundsPerMeal": _num(self.pounds_per_meal),
            "co2PerPound": _num(self.co2_per_pound),
            "waterPerPound": _num(self.water_per_pound),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
