"""
Request models for the HTTP API.

Field names follow the camelCase wire format; populate_by_name also
accepts the snake_case names.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


HEX_COLOR = r"^#[0-9a-fA-F]{6}$"

# Coefficient columns are NUMERIC(12, 4).
MIN_COEFFICIENT = Decimal("0.0001")
MAX_COEFFICIENT = Decimal("99999999.9999")
COEFFICIENT_BOUNDS = dict(ge=MIN_COEFFICIENT, le=MAX_COEFFICIENT, decimal_places=4)


class DonorUploadRequest(BaseModel):
    """JSON upload: rows already parsed client-side."""

    model_config = ConfigDict(populate_by_name=True)

    organization_id: int = Field(alias="organizationId", ge=1)
    donors: Any = None
    file_name: Optional[str] = Field(default=None, alias="fileName")


class OrganizationFields(BaseModel):
    """Organization fields shared by create and update."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    logo: Optional[str] = None
    primary_color: Optional[str] = Field(default=None, alias="primaryColor", pattern=HEX_COLOR)
    secondary_color: Optional[str] = Field(default=None, alias="secondaryColor", pattern=HEX_COLOR)
    thank_you_message: Optional[str] = Field(default=None, alias="thankYouMessage")
    thank_you_video_url: Optional[str] = Field(default=None, alias="thankYouVideoUrl")

    default_anonymous_donors: Optional[bool] = Field(default=None, alias="defaultAnonymousDonors")
    default_show_full_name: Optional[bool] = Field(default=None, alias="defaultShowFullName")
    default_show_email: Optional[bool] = Field(default=None, alias="defaultShowEmail")
    default_allow_sharing: Optional[bool] = Field(default=None, alias="defaultAllowSharing")
    privacy_policy_text: Optional[str] = Field(default=None, alias="privacyPolicyText")

    dollars_per_meal: Optional[Decimal] = Field(default=None, alias="dollarsPerMeal", **COEFFICIENT_BOUNDS)
    meals_per_person: Optional[Decimal] = Field(default=None, alias="mealsPerPerson", **COEFFICIENT_BOUNDS)
    pounds_per_meal: Optional[Decimal] = Field(default=None, alias="poundsPerMeal", **COEFFICIENT_BOUNDS)
    co2_per_pound: Optional[Decimal] = Field(default=None, alias="co2PerPound", **COEFFICIENT_BOUNDS)
    water_per_pound: Optional[Decimal] = Field(default=None, alias="waterPerPound", **COEFFICIENT_BOUNDS)


class OrganizationCreate(OrganizationFields):
    name: str = Field(min_length=1)

    def changes(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class OrganizationUpdate(OrganizationFields):
    name: Optional[str] = Field(default=None, min_length=1)

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        # Names and the boolean/text defaults cannot be cleared; coefficients can
        # (None restores the engine default).
        nullable = {
            "logo", "thank_you_video_url",
            "dollars_per_meal", "meals_per_person", "pounds_per_meal",
            "co2_per_pound", "water_per_pound",
        }
        return {
            key: value for key, value in data.items()
            if value is not None or key in nullable
        }
