"""
Duplicate detection and batch insertion policy.

Decides, per validated donor and in input order, whether it is accepted
or rejected as a duplicate:
- email already in the store -> duplicate
- email seen earlier in the same batch -> duplicate of the first
- otherwise accepted, with an impact token assigned if absent

The policy is reject-on-duplicate. Existing donors are never updated
and their impact tokens are never regenerated.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from ..core.helpers.token import DEFAULT_TOKEN_LENGTH, assign_token, is_valid_token
from ..core.models import DonorRecord, StoredDonor
from ..storage.base import DonorStore

logger = structlog.get_logger(__name__)

Lookup = Callable[[str], Optional[StoredDonor]]

# Client-supplied tokens must fit the impact_url column
MIN_SUPPLIED_TOKEN_LENGTH = 8
MAX_SUPPLIED_TOKEN_LENGTH = 32


def _usable_token(token: Optional[str]) -> bool:
    if not token or not MIN_SUPPLIED_TOKEN_LENGTH <= len(token) <= MAX_SUPPLIED_TOKEN_LENGTH:
        return False
    return is_valid_token(token, length=len(token))


@dataclass(frozen=True)
class DuplicateDonor:
    """A donor rejected because the email is already taken."""
    email: str
    name: str
    row: Optional[int] = None
    in_batch: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "name": self.name}


@dataclass
class BatchPlan:
    """Accepted donors (tokens assigned) and rejected duplicates."""
    accepted: List[DonorRecord] = field(default_factory=list)
    duplicates: List[DuplicateDonor] = field(default_factory=list)
    inserted: List[StoredDonor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": len(self.accepted),
            "inserted": len(self.inserted),
            "duplicates": [d.to_dict() for d in self.duplicates],
        }


def plan_batch(
    candidates: Sequence[DonorRecord],
    find_by_email: Lookup,
    find_by_token: Optional[Lookup] = None,
    token_length: int = DEFAULT_TOKEN_LENGTH,
) -> BatchPlan:
    """
    Partition candidates into accepted donors and duplicates.

    Args:
        candidates: Validated donors in upload order
        find_by_email: Store lookup by email
        find_by_token: Store lookup by impact token (collision checks)
        token_length: Length of generated tokens

    Returns:
        BatchPlan with accepted donors carrying their impact tokens

    Example:
        >>> a = DonorRecord("Ann", "Lee", "a@x.com", Decimal("10"), source_row=1)
        >>> b = DonorRecord("Bo", "Ng", "b@x.com", Decimal("5"), source_row=2)
        >>> plan = plan_batch([a, b, replace(a, source_row=3)], lambda email: None)
        >>> [(d.email, d.row, d.in_batch) for d in plan.duplicates]
        [('a@x.com', 3, True)]
    """
    plan = BatchPlan()
    batch_emails: Dict[str, DonorRecord] = {}
    batch_tokens: Dict[str, str] = {}

    def token_taken(email: str) -> Callable[[str], bool]:
        def is_taken(token: str) -> bool:
            owner = batch_tokens.get(token)
            if owner is not None:
                return owner != email
            if find_by_token is None:
                return False
            existing = find_by_token(token)
            return existing is not None and existing.email != email
        return is_taken

    for candidate in candidates:
        email = candidate.email

        if email in batch_emails:
            plan.duplicates.append(DuplicateDonor(
                email=email,
                name=candidate.full_name,
                row=candidate.source_row,
                in_batch=True,
            ))
            continue

        existing = find_by_email(email)
        if existing is not None:
            plan.duplicates.append(DuplicateDonor(
                email=email,
                name=candidate.full_name,
                row=candidate.source_row,
            ))
            continue

        token = candidate.impact_url
        if not (_usable_token(token) and not token_taken(email)(token)):
            if token:
                logger.info("Replacing supplied impact token", email=email, row=candidate.source_row)
            token = assign_token(email, token_taken(email), length=token_length)

        accepted = replace(candidate, impact_url=token)
        batch_emails[email] = accepted
        batch_tokens[token] = email
        plan.accepted.append(accepted)

    logger.debug(
        "Batch planned",
        candidates=len(candidates),
        accepted=len(plan.accepted),
        duplicates=len(plan.duplicates),
    )
    return plan


def insert_batch(
    candidates: Sequence[DonorRecord],
    store: DonorStore,
    token_length: int = DEFAULT_TOKEN_LENGTH,
) -> BatchPlan:
    """
    Plan the batch against the store and insert accepted donors atomically.

    Raises:
        DuplicateDonorError: If the store rejects the batch on a unique
            constraint (another upload inserted the same donor first)
        StorageError: On other storage failures
    """
    plan = plan_batch(candidates, store.get_by_email, store.get_by_token, token_length)
    if plan.accepted:
        plan.inserted = store.insert_many(plan.accepted)
    return plan
