"""Tests for donor display and privacy helpers."""

from datetime import date
from decimal import Decimal

import pytest

from ..helpers.name import (
    ANONYMOUS_DISPLAY_NAME,
    clean_name,
    display_name,
    public_donor_view,
    resolve_privacy,
)
from ..models import DonorRecord, OrganizationProfile


@pytest.fixture
def organization():
    return OrganizationProfile(name="Metro Area Food Bank", id=1)


def make_donor(**overrides):
    data = dict(
        first_name="Mary",
        last_name="Smith",
        email="mary@example.com",
        total_giving=Decimal("250.00"),
        organization_id=1,
        impact_url="abcDEF123456",
    )
    data.update(overrides)
    return DonorRecord(**data)


class TestCleanName:
    """Tests for clean_name."""

    def test_strip_and_collapse(self):
        assert clean_name("  Mary   Ann ") == "Mary Ann"

    def test_keeps_capitalization(self):
        assert clean_name("mcDONALD") == "mcDONALD"

    def test_nfc_normalization(self):
        assert clean_name("Jose\u0301") == "Jos\u00e9"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_non_text_returns_empty(self, value):
        assert clean_name(value) == ""


class TestResolvePrivacy:
    """Tests for resolve_privacy."""

    def test_organization_defaults_apply(self, organization):
        assert resolve_privacy(make_donor(), organization) == {
            "is_anonymous": False,
            "show_full_name": True,
            "show_email": False,
            "allow_sharing": True,
        }

    def test_donor_flags_override_defaults(self, organization):
        donor = make_donor(is_anonymous=True, show_email=True, allow_sharing=False)
        privacy = resolve_privacy(donor, organization)
        assert privacy["is_anonymous"] is True
        assert privacy["show_email"] is True
        assert privacy["allow_sharing"] is False

    def test_explicit_false_is_not_default(self):
        organization = OrganizationProfile(name="Org", default_show_full_name=True)
        donor = make_donor(show_full_name=False)
        assert resolve_privacy(donor, organization)["show_full_name"] is False

    def test_opt_out_forces_anonymous(self, organization):
        donor = make_donor(is_anonymous=False, allow_sharing=True, opt_out_date=date(2024, 1, 1))
        privacy = resolve_privacy(donor, organization)
        assert privacy["is_anonymous"] is True
        assert privacy["allow_sharing"] is False


class TestDisplayName:
    """Tests for display_name."""

    def test_full_name(self, organization):
        assert display_name(make_donor(), organization) == "Mary Smith"

    def test_first_name_only(self, organization):
        assert display_name(make_donor(show_full_name=False), organization) == "Mary"

    def test_anonymous(self, organization):
        assert display_name(make_donor(is_anonymous=True), organization) == ANONYMOUS_DISPLAY_NAME

    def test_organization_default_anonymous(self):
        organization = OrganizationProfile(name="Org", default_anonymous_donors=True)
        assert display_name(make_donor(), organization) == ANONYMOUS_DISPLAY_NAME


class TestPublicDonorView:
    """Tests for public_donor_view."""

    def test_default_view(self, organization):
        view = public_donor_view(make_donor(gift_count=3), organization)
        assert view["displayName"] == "Mary Smith"
        assert view["firstName"] == "Mary"
        assert view["lastName"] == "Smith"
        assert view["email"] is None
        assert view["totalGiving"] == 250.0
        assert view["giftCount"] == 3
        assert view["impactUrl"] == "abcDEF123456"
        assert view["isAnonymous"] is False
        assert view["allowSharing"] is True

    def test_email_shown_when_allowed(self, organization):
        view = public_donor_view(make_donor(show_email=True), organization)
        assert view["email"] == "mary@example.com"

    def test_anonymous_hides_identity(self, organization):
        view = public_donor_view(make_donor(is_anonymous=True, show_email=True), organization)
        assert view["displayName"] == ANONYMOUS_DISPLAY_NAME
        assert view["firstName"] is None
        assert view["lastName"] is None
        assert view["email"] is None
        assert view["totalGiving"] == 250.0

    def test_first_name_only_hides_last_name(self, organization):
        view = public_donor_view(make_donor(show_full_name=False), organization)
        assert view["firstName"] == "Mary"
        assert view["lastName"] is None

    def test_dates_serialized(self, organization):
        donor = make_donor(first_gift_date=date(2023, 1, 15), last_gift_date=date(2023, 12, 1))
        view = public_donor_view(donor, organization)
        assert view["firstGiftDate"] == "2023-01-15"
        assert view["lastGiftDate"] == "2023-12-01"
