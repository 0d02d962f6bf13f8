"""
Storage capability interface.

Ingestion and the API only depend on this protocol; the in-memory and
SQL stores implement it.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..core.models import DonorRecord, OrganizationProfile, StoredDonor


class DonorStore(Protocol):
    """Donor and organization persistence."""

    def get_donor(self, donor_id: int) -> Optional[StoredDonor]:
        ...

    def get_by_email(self, email: str) -> Optional[StoredDonor]:
        ...

    def get_by_token(self, token: str) -> Optional[StoredDonor]:
        ...

    def get_all_for_org(self, organization_id: int) -> List[StoredDonor]:
        ...

    def insert_many(self, records: Sequence[DonorRecord]) -> List[StoredDonor]:
        """
        Insert all records or none.

        Raises:
            DuplicateDonorError: If an email or impact URL already exists
            StorageError: On any other storage failure
        """
        ...

    def get_organization(self, organization_id: int) -> Optional[OrganizationProfile]:
        ...

    def create_organization(self, profile: OrganizationProfile) -> OrganizationProfile:
        ...

    def update_organization(
        self, organization_id: int, changes: Dict[str, Any]
    ) -> Optional[OrganizationProfile]:
        ...
