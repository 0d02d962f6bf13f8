"""
Donor name display and privacy rules for public impact pages.

Each donor may carry privacy flags from the upload; any flag left unset
falls back to the owning organization's default.
"""

import re
import unicodedata
from typing import Any, Dict, Optional

from ..models import DonorRecord, OrganizationProfile


ANONYMOUS_DISPLAY_NAME = "Anonymous Donor"


def clean_name(name: Optional[str]) -> str:
    """
    Tidy a name for display.

    Strips surrounding whitespace, normalizes unicode to NFC and collapses
    internal runs of whitespace. Capitalization is left as provided.

    Examples:
        >>> clean_name("  Mary   Ann ")
        'Mary Ann'
        >>> clean_name(None)
        ''
    """
    if not name or not isinstance(name, str):
        return ""

    result = unicodedata.normalize("NFC", name.strip())
    return re.sub(r"\s+", " ", result)


def _flag(value: Optional[bool], default: bool) -> bool:
    return default if value is None else value


def resolve_privacy(donor: DonorRecord, organization: OrganizationProfile) -> Dict[str, bool]:
    """
    Resolve the effective privacy flags for a donor.

    An opt-out date forces the donor anonymous and unshareable.
    """
    anonymous = _flag(donor.is_anonymous, organization.default_anonymous_donors)
    allow_sharing = _flag(donor.allow_sharing, organization.default_allow_sharing)

    if donor.opt_out_date is not None:
        anonymous = True
        allow_sharing = False

    return {
        "is_anonymous": anonymous,
        "show_full_name": _flag(donor.show_full_name, organization.default_show_full_name),
        "show_email": _flag(donor.show_email, organization.default_show_email),
        "allow_sharing": allow_sharing,
    }


def display_name(donor: DonorRecord, organization: OrganizationProfile) -> str:
    """Name shown on the donor's public impact page."""
    privacy = resolve_privacy(donor, organization)

    if privacy["is_anonymous"]:
        return ANONYMOUS_DISPLAY_NAME

    first = clean_name(donor.first_name)
    if not privacy["show_full_name"]:
        return first

    return clean_name(f"{first} {donor.last_name}")


def public_donor_view(donor: DonorRecord, organization: OrganizationProfile) -> Dict[str, Any]:
    """
    Build the donor payload for the public impact page.

    Names and email are withheld according to the resolved privacy flags.
    Giving history is always included since the page is about it.
    """
    privacy = resolve_privacy(donor, organization)
    anonymous = privacy["is_anonymous"]

    first_name: Optional[str] = None if anonymous else clean_name(donor.first_name)
    last_name: Optional[str] = None
    if not anonymous and privacy["show_full_name"]:
        last_name = clean_name(donor.last_name)

    return {
        "displayName": display_name(donor, organization),
        "firstName": first_name,
        "lastName": last_name,
        "email": donor.email if privacy["show_email"] and not anonymous else None,
        "totalGiving": float(donor.total_giving),
        "firstGiftDate": donor.first_gift_date.isoformat() if donor.first_gift_date else None,
        "lastGiftDate": donor.last_gift_date.isoformat() if donor.last_gift_date else None,
        "largestGift": float(donor.largest_gift) if donor.largest_gift is not None else None,
        "giftCount": donor.gift_count,
        "impactUrl": donor.impact_url,
        "isAnonymous": anonymous,
        "allowSharing": privacy["allow_sharing"],
    }
