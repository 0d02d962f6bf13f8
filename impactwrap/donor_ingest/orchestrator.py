"""
Orchestrator for the donor upload pipeline.

Coordinates the complete flow:
1. Check the organization exists
2. Parse and validate rows (raw CSV text or pre-parsed dictionaries)
3. Detect duplicates against the store and within the batch
4. Assign impact tokens and insert accepted donors atomically
5. Classify the outcome and build the response summary

This module:
- Collects row-level problems instead of raising them
- Retries once when a concurrent upload wins a unique constraint race
- Lets system failures (StorageError) propagate to the caller
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.errors import DuplicateDonorError, OrganizationNotFoundError, UploadTooLargeError
from ..core.log_config import get_logger, log_processing_batch
from ..core.settings import Settings, settings as get_settings
from ..storage.base import DonorStore
from .batch import BatchPlan, DuplicateDonor, insert_batch, plan_batch
from .parser import ValidationResult, parse_and_validate, validate_records

logger = get_logger(__name__)


OUTCOME_SUCCESS = "success"
OUTCOME_PARTIAL = "partial"
OUTCOME_ALL_INVALID = "all_invalid"
OUTCOME_NO_NEW_DONORS = "no_new_donors"

STATUS_BY_OUTCOME = {
    OUTCOME_SUCCESS: 201,
    OUTCOME_PARTIAL: 201,
    OUTCOME_ALL_INVALID: 400,
    OUTCOME_NO_NEW_DONORS: 409,
}


@dataclass
class UploadResult:
    """Summary of one donor upload."""
    organization_id: int
    validation: ValidationResult = field(default_factory=ValidationResult)
    plan: BatchPlan = field(default_factory=BatchPlan)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def total_processed(self) -> int:
        return len(self.plan.inserted)

    @property
    def duplicates(self) -> List[DuplicateDonor]:
        return self.plan.duplicates

    @property
    def has_errors(self) -> bool:
        return bool(self.validation.errors or self.plan.duplicates)

    @property
    def outcome(self) -> str:
        if not self.validation.valid_rows:
            return OUTCOME_ALL_INVALID
        if not self.plan.inserted:
            return OUTCOME_NO_NEW_DONORS
        if self.has_errors:
            return OUTCOME_PARTIAL
        return OUTCOME_SUCCESS

    @property
    def status_code(self) -> int:
        return STATUS_BY_OUTCOME[self.outcome]

    @property
    def message(self) -> str:
        outcome = self.outcome
        if outcome == OUTCOME_ALL_INVALID:
            if self.validation.total_rows == 0:
                return "No donor records found"
            return "All donor records contain validation errors"
        if outcome == OUTCOME_NO_NEW_DONORS:
            return "All donor records already exist"
        return f"Successfully processed {self.total_processed} donor records"

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_response(self) -> Dict[str, Any]:
        """Build the upload response body."""
        body: Dict[str, Any] = {
            "message": self.message,
            "outcome": self.outcome,
            "totalProcessed": self.total_processed,
            "hasErrors": self.has_errors,
        }
        if self.validation.errors:
            body["errors"] = self.validation.errors_by_row()
        if self.plan.duplicates:
            body["duplicates"] = [d.to_dict() for d in self.plan.duplicates]
        return body

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logs and CLI output."""
        return {
            **self.to_response(),
            "organizationId": self.organization_id,
            "totalRows": self.validation.total_rows,
            "impactUrls": {d.email: d.impact_url for d in self.plan.inserted},
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "durationSeconds": self.duration_seconds,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _insert_with_retry(
    valid_rows: Sequence,
    store: DonorStore,
    token_length: int,
) -> BatchPlan:
    """
    Insert a validated batch, re-planning once if a concurrent upload
    claimed some of the same emails between planning and insert.

    If the re-planned batch conflicts again, only the rows the store names
    as conflicting are reported as duplicates; the rest are inserted. A
    conflict on that final insert propagates.
    """
    try:
        return insert_batch(valid_rows, store, token_length)
    except DuplicateDonorError as e:
        logger.warning("Donor batch hit unique constraint, re-planning", error=str(e))

    plan = plan_batch(valid_rows, store.get_by_email, store.get_by_token, token_length)
    if not plan.accepted:
        return plan

    try:
        plan.inserted = store.insert_many(plan.accepted)
        return plan
    except DuplicateDonorError as e:
        conflicting = set(e.emails) or {d.email for d in plan.accepted}
        logger.error("Donor batch conflicted twice", conflicting=sorted(conflicting))

    plan.duplicates.extend(
        DuplicateDonor(email=d.email, name=d.full_name, row=d.source_row)
        for d in plan.accepted
        if d.email in conflicting
    )
    plan.duplicates.sort(key=lambda d: d.row or 0)
    plan.accepted = [d for d in plan.accepted if d.email not in conflicting]
    if plan.accepted:
        plan.inserted = store.insert_many(plan.accepted)
    return plan


def run_donor_upload(
    store: DonorStore,
    organization_id: int,
    rows: Optional[Sequence[Mapping[str, Any]]] = None,
    csv_text: Optional[str] = None,
    config: Optional[Settings] = None,
) -> UploadResult:
    """
    Execute the complete donor upload pipeline.

    Exactly one of `rows` or `csv_text` must be given.

    Args:
        store: Donor store
        organization_id: Organization owning the donors
        rows: Rows already parsed into dictionaries (JSON upload)
        csv_text: Raw CSV file contents (server-side parsing)
        config: Settings (defaults to application settings)

    Returns:
        UploadResult with counts, row errors and duplicates

    Raises:
        OrganizationNotFoundError: If the organization does not exist
        UploadTooLargeError: If the upload exceeds max_upload_rows
        StorageError: If storage fails

    Example:
        >>> result = run_donor_upload(store, 1, csv_text=open("donors.csv").read())
        >>> result.status_code, result.total_processed
        (201, 42)
    """
    if (rows is None) == (csv_text is None):
        raise ValueError("Provide exactly one of rows or csv_text")

    config = config or get_settings()
    result = UploadResult(organization_id=organization_id, started_at=_now())

    if store.get_organization(organization_id) is None:
        raise OrganizationNotFoundError(organization_id)

    if rows is not None and len(rows) > config.max_upload_rows:
        raise UploadTooLargeError(len(rows), config.max_upload_rows)

    # Steps 1-2: parse and validate
    if csv_text is not None:
        result.validation = parse_and_validate(csv_text)
    else:
        result.validation = validate_records(rows)

    if result.validation.total_rows > config.max_upload_rows:
        raise UploadTooLargeError(result.validation.total_rows, config.max_upload_rows)

    valid_rows = [r.with_organization(organization_id) for r in result.validation.valid_rows]

    # Steps 3-4: duplicates, tokens, insert
    if valid_rows:
        result.plan = _insert_with_retry(valid_rows, store, config.token_length)

    result.finished_at = _now()

    log_processing_batch(
        logger,
        batch_id=f"upload_{organization_id}_{int(result.started_at.timestamp())}",
        items_processed=result.total_processed,
        items_failed=len(result.validation.invalid_row_numbers) + len(result.plan.duplicates),
        duration_ms=result.duration_seconds * 1000,
        organization_id=organization_id,
        outcome=result.outcome,
        duplicates=len(result.plan.duplicates),
        in_batch_duplicates=sum(1 for d in result.plan.duplicates if d.in_batch),
    )

    return result
