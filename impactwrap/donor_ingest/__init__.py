"""
Donor upload pipeline: read, validate, de-duplicate, tokenize, insert.
"""

from .batch import BatchPlan, DuplicateDonor, insert_batch, plan_batch
from .orchestrator import UploadResult, run_donor_upload
from .parser import RowError, ValidationResult, parse_and_validate, validate_records
from .template import TEMPLATE_HEADERS, render_template

__all__ = [
    "BatchPlan",
    "DuplicateDonor",
    "insert_batch",
    "plan_batch",
    "UploadResult",
    "run_donor_upload",
    "RowError",
    "ValidationResult",
    "parse_and_validate",
    "validate_records",
    "TEMPLATE_HEADERS",
    "render_template",
]
