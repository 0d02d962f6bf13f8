"""
Relational store backed by SQLAlchemy Core.

Donor batches are inserted inside a single transaction: either every
row lands or none does. Unique-constraint violations (email or impact
URL taken, usually by a concurrent upload) surface as
DuplicateDonorError so callers can report duplicates instead of failing.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.db.schema import donors, organizations
from ..core.errors import DuplicateDonorError, StorageError
from ..core.log_config import log_database_operation
from ..core.models import DonorRecord, OrganizationProfile, StoredDonor

logger = structlog.get_logger(__name__)


_DONOR_COLUMNS = [
    "first_name", "last_name", "email", "total_giving",
    "first_gift_date", "last_gift_date", "largest_gift", "gift_count",
    "organization_id", "impact_url",
    "is_anonymous", "show_full_name", "show_email", "allow_sharing", "opt_out_date",
]

_ORGANIZATION_COLUMNS = [
    c.name for c in organizations.columns
    if c.name not in ("id", "created_at", "updated_at")
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_donor(row: RowMapping) -> StoredDonor:
    return StoredDonor(
        **{name: row[name] for name in _DONOR_COLUMNS},
        id=row["id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_organization(row: RowMapping) -> OrganizationProfile:
    return OrganizationProfile(
        **{name: row[name] for name in _ORGANIZATION_COLUMNS},
        id=row["id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqlDonorStore:
    """DonorStore over a SQLAlchemy engine (PostgreSQL or SQLite)."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _fetch_one(self, statement) -> Optional[RowMapping]:
        try:
            with self.engine.connect() as conn:
                return conn.execute(statement).mappings().first()
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}") from e

    # Donors

    def get_donor(self, donor_id: int) -> Optional[StoredDonor]:
        row = self._fetch_one(select(donors).where(donors.c.id == donor_id))
        return _row_to_donor(row) if row else None

    def get_by_email(self, email: str) -> Optional[StoredDonor]:
        row = self._fetch_one(select(donors).where(donors.c.email == email))
        return _row_to_donor(row) if row else None

    def get_by_token(self, token: str) -> Optional[StoredDonor]:
        row = self._fetch_one(select(donors).where(donors.c.impact_url == token))
        return _row_to_donor(row) if row else None

    def get_all_for_org(self, organization_id: int) -> List[StoredDonor]:
        query = (
            select(donors)
            .where(donors.c.organization_id == organization_id)
            .order_by(donors.c.id)
        )
        try:
            with self.engine.connect() as conn:
                return [_row_to_donor(row) for row in conn.execute(query).mappings()]
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}") from e

    def _conflicting_emails(self, records: Sequence[DonorRecord]) -> List[str]:
        """Emails in a rejected batch whose email or token is already stored."""
        conflicts = []
        for record in records:
            existing = self.get_by_email(record.email)
            if existing is None and record.impact_url:
                existing = self.get_by_token(record.impact_url)
            if existing is not None:
                conflicts.append(record.email)
        return conflicts

    def insert_many(self, records: Sequence[DonorRecord]) -> List[StoredDonor]:
        if not records:
            return []

        now = _now()
        payload = [
            {
                **{name: getattr(record, name) for name in _DONOR_COLUMNS},
                "created_at": now,
                "updated_at": now,
            }
            for record in records
        ]

        start = time.monotonic()
        try:
            with self.engine.begin() as conn:
                rows = conn.execute(
                    insert(donors).returning(*donors.c),
                    payload,
                ).mappings().all()
        except IntegrityError as e:
            logger.warning(
                "Donor batch rejected by unique constraint",
                batch_size=len(records),
                error=str(e.orig) if e.orig is not None else str(e),
            )
            raise DuplicateDonorError(self._conflicting_emails(records)) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}") from e

        log_database_operation(
            logger,
            operation="INSERT",
            table="donors",
            duration_ms=(time.monotonic() - start) * 1000,
            rows_affected=len(rows),
        )

        # RETURNING order is not guaranteed for executemany; re-order by email
        by_email = {row["email"]: _row_to_donor(row) for row in rows}
        return [by_email[record.email] for record in records]

    # Organizations

    def get_organization(self, organization_id: int) -> Optional[OrganizationProfile]:
        row = self._fetch_one(select(organizations).where(organizations.c.id == organization_id))
        return _row_to_organization(row) if row else None

    def create_organization(self, profile: OrganizationProfile) -> OrganizationProfile:
        now = _now()
        values = {name: getattr(profile, name) for name in _ORGANIZATION_COLUMNS}
        values.update(created_at=now, updated_at=now)

        try:
            with self.engine.begin() as conn:
                row = conn.execute(
                    insert(organizations).values(**values).returning(*organizations.c)
                ).mappings().one()
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}") from e

        return _row_to_organization(row)

    def update_organization(
        self, organization_id: int, changes: Dict[str, Any]
    ) -> Optional[OrganizationProfile]:
        unknown = set(changes) - set(_ORGANIZATION_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown organization fields: {sorted(unknown)}")

        statement = (
            update(organizations)
            .where(organizations.c.id == organization_id)
            .values(**changes, updated_at=_now())
            .returning(*organizations.c)
        )

        try:
            with self.engine.begin() as conn:
                row = conn.execute(statement).mappings().first()
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}") from e

        return _row_to_organization(row) if row else None
