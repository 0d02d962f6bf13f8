"""
In-memory store.

Used for tests and for running the service without a database. All
state lives in dictionaries guarded by a single lock.
"""

import threading
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..core.errors import DuplicateDonorError
from ..core.models import DonorRecord, OrganizationProfile, StoredDonor


DEFAULT_ORGANIZATION = OrganizationProfile(
    name="Metro Area Food Bank",
    thank_you_message=(
        "Your generosity is helping families in our community access "
        "nutritious food. Thank you for being part of our mission to "
        "fight hunger!"
    ),
)

_ORGANIZATION_FIELDS = {f.name for f in fields(OrganizationProfile)} - {"id", "created_at", "updated_at"}
_DONOR_FIELDS = [f.name for f in fields(DonorRecord) if f.name != "source_row"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryDonorStore:
    """Dictionary-backed DonorStore."""

    def __init__(self, seed: bool = False):
        self._lock = threading.Lock()
        self._donors: Dict[int, StoredDonor] = {}
        self._by_email: Dict[str, int] = {}
        self._by_token: Dict[str, int] = {}
        self._organizations: Dict[int, OrganizationProfile] = {}
        self._next_donor_id = 1
        self._next_org_id = 1

        if seed:
            self.create_organization(DEFAULT_ORGANIZATION)

    # Donors

    def get_donor(self, donor_id: int) -> Optional[StoredDonor]:
        with self._lock:
            return self._donors.get(donor_id)

    def get_by_email(self, email: str) -> Optional[StoredDonor]:
        with self._lock:
            donor_id = self._by_email.get(email)
            return self._donors.get(donor_id) if donor_id is not None else None

    def get_by_token(self, token: str) -> Optional[StoredDonor]:
        with self._lock:
            donor_id = self._by_token.get(token)
            return self._donors.get(donor_id) if donor_id is not None else None

    def get_all_for_org(self, organization_id: int) -> List[StoredDonor]:
        with self._lock:
            donors = list(self._donors.values())
        return [d for d in donors if d.organization_id == organization_id]

    def insert_many(self, records: Sequence[DonorRecord]) -> List[StoredDonor]:
        with self._lock:
            # Check the whole batch before touching any state
            emails = set()
            tokens = set()
            conflicts = []
            for record in records:
                if (
                    record.email in self._by_email or record.email in emails
                    or not record.impact_url
                    or record.impact_url in self._by_token or record.impact_url in tokens
                ):
                    conflicts.append(record.email)
                emails.add(record.email)
                tokens.add(record.impact_url)

            if conflicts:
                raise DuplicateDonorError(conflicts)

            now = _now()
            stored = []
            for record in records:
                donor = StoredDonor(
                    **{name: getattr(record, name) for name in _DONOR_FIELDS},
                    id=self._next_donor_id,
                    created_at=now,
                    updated_at=now,
                )
                self._next_donor_id += 1
                self._donors[donor.id] = donor
                self._by_email[donor.email] = donor.id
                self._by_token[donor.impact_url] = donor.id
                stored.append(donor)

            return stored

    # Organizations

    def get_organization(self, organization_id: int) -> Optional[OrganizationProfile]:
        with self._lock:
            return self._organizations.get(organization_id)

    def create_organization(self, profile: OrganizationProfile) -> OrganizationProfile:
        with self._lock:
            now = _now()
            created = replace(profile, id=self._next_org_id, created_at=now, updated_at=now)
            self._next_org_id += 1
            self._organizations[created.id] = created
            return created

    def update_organization(
        self, organization_id: int, changes: Dict[str, Any]
    ) -> Optional[OrganizationProfile]:
        with self._lock:
            existing = self._organizations.get(organization_id)
            if existing is None:
                return None

            unknown = set(changes) - _ORGANIZATION_FIELDS
            if unknown:
                raise ValueError(f"Unknown organization fields: {sorted(unknown)}")

            updated = replace(existing, **changes, updated_at=_now())
            self._organizations[organization_id] = updated
            return updated

