"""
Parser and row validator for donor uploads.

Converts raw CSV text (or rows already parsed into dictionaries) into
validated DonorRecord objects plus a list of row-level errors:
- Header normalization against known column aliases
- Structural checks per row (quoting, field counts)
- Required field validation with user-facing messages
- Permissive parsing of optional dates, amounts, counts and flags

One row's failure never blocks the others. Rows are numbered from 1 over
the data records (header excluded, blank lines not counted).
"""

import csv
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..core.models import DonorRecord

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS = ["first_name", "last_name", "email", "total_giving"]
OPTIONAL_COLUMNS = ["first_gift_date", "last_gift_date", "largest_gift", "gift_count"]
PRIVACY_COLUMNS = ["is_anonymous", "show_full_name", "show_email", "allow_sharing", "opt_out_date"]

# Maps canonical field name to accepted header spellings. Headers are
# compared after normalize_header(), so "First Name", "first_name" and
# "FIRST-NAME" all match "firstname".
COLUMN_ALIASES: Dict[str, List[str]] = {
    "first_name": ["first_name", "firstname", "first", "given_name", "fname"],
    "last_name": ["last_name", "lastname", "last", "surname", "family_name", "lname"],
    "email": ["email", "email_address", "e_mail", "mail"],
    "total_giving": [
        "total_giving", "totalgiving", "total_given", "total_donated",
        "lifetime_giving", "total_amount", "total",
    ],
    "first_gift_date": ["first_gift_date", "first_gift", "first_donation_date"],
    "last_gift_date": ["last_gift_date", "last_gift", "last_donation_date", "most_recent_gift_date"],
    "largest_gift": ["largest_gift", "largest_gift_amount", "max_gift", "biggest_gift"],
    "gift_count": ["gift_count", "number_of_gifts", "num_gifts", "total_gifts", "donation_count"],
    "is_anonymous": ["is_anonymous", "anonymous"],
    "show_full_name": ["show_full_name", "full_name_visible"],
    "show_email": ["show_email", "email_visible"],
    "allow_sharing": ["allow_sharing", "sharing_allowed", "shareable"],
    "opt_out_date": ["opt_out_date", "opted_out", "opt_out"],
    "impact_url": ["impact_url", "impact_token", "token"],
}

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

PARSE_ERROR_FIELD = "parse_error"

# Largest value the donors table stores (NUMERIC(14, 2)).
MAX_AMOUNT = Decimal("999999999999.99")

DATE_FORMATS = [
    "%Y-%m-%d",          # 2023-01-15
    "%m/%d/%Y",          # 01/15/2023
    "%m/%d/%y",          # 01/15/23
    "%Y/%m/%d",          # 2023/01/15
    "%m-%d-%Y",          # 01-15-2023
    "%Y-%m-%dT%H:%M:%S", # ISO with time
    "%Y-%m-%d %H:%M:%S",
    "%B %d, %Y",         # January 15, 2023
    "%b %d, %Y",         # Jan 15, 2023
]

TRUE_VALUES = {"true", "1", "yes", "y", "t"}
FALSE_VALUES = {"false", "0", "no", "n", "f"}


@dataclass(frozen=True)
class RowError:
    """Validation or parse failure localized to one data row."""
    row: int
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Partition of an upload into valid records and row errors."""
    valid_rows: List[DonorRecord] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    total_rows: int = 0

    @property
    def invalid_row_numbers(self) -> List[int]:
        return sorted({e.row for e in self.errors})

    @property
    def outcome(self) -> str:
        """
        One of:
        - "empty": no data rows at all
        - "all_failed": every row failed
        - "partial": some rows valid, some failed
        - "ok": no errors
        """
        if self.total_rows == 0 and not self.errors:
            return "empty"
        if not self.valid_rows:
            return "all_failed"
        if self.errors:
            return "partial"
        return "ok"

    def errors_by_row(self) -> List[Dict[str, Any]]:
        """Group errors as [{row, errors: [{field, message}]}] in row order."""
        grouped: Dict[int, List[Dict[str, str]]] = {}
        for error in self.errors:
            grouped.setdefault(error.row, []).append(
                {"field": error.field, "message": error.message}
            )
        return [{"row": row, "errors": grouped[row]} for row in sorted(grouped)]


def normalize_header(name: Any) -> str:
    """
    Normalize a header for alias matching: lowercase, alphanumerics only.

    Examples:
        >>> normalize_header(" First Name ")
        'firstname'
        >>> normalize_header("\\ufeffEMAIL")
        'email'
    """
    if name is None:
        return ""
    return re.sub(r"[^0-9a-z]", "", str(name).lower())


_ALIAS_LOOKUP: Dict[str, str] = {
    normalize_header(alias): canonical
    for canonical, aliases in COLUMN_ALIASES.items()
    for alias in aliases
}


def resolve_headers(headers: Iterable[Any]) -> Dict[int, str]:
    """
    Map column positions to canonical field names.

    Unrecognized columns are left out. When two columns resolve to the
    same field, the first one wins.
    """
    mapping: Dict[int, str] = {}
    seen = set()
    for index, header in enumerate(headers):
        canonical = _ALIAS_LOOKUP.get(normalize_header(header))
        if canonical and canonical not in seen:
            mapping[index] = canonical
            seen.add(canonical)
    return mapping


def canonicalize_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename a raw row's keys to canonical field names, dropping unknown keys."""
    keys = list(record.keys())
    mapping = resolve_headers(keys)
    return {canonical: record[keys[index]] for index, canonical in mapping.items()}


def _clean(value: Any) -> Optional[str]:
    """Stringify and trim a cell; empty cells become None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a currency amount.

    Strips "$" and thousands separators. Returns None for anything that
    is not a finite number.
    """
    if value is None:
        return None

    cleaned = re.sub(r"[$,\s]", "", str(value))
    if not cleaned:
        return None

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None
    return amount


def _parse_optional_amount(value: Optional[str]) -> Optional[Decimal]:
    amount = _parse_decimal(value)
    if amount is None or amount < 0 or amount > MAX_AMOUNT:
        return None
    return amount


def _parse_count(value: Optional[str]) -> Optional[int]:
    """Parse a gift count; fractional or negative input counts as absent."""
    if value is None:
        return None

    try:
        number = int(str(value).replace(",", "").strip())
    except ValueError:
        amount = _parse_decimal(value)
        if amount is None or amount != amount.to_integral_value():
            logger.debug(f"Could not parse count: {value}")
            return None
        number = int(amount)

    return number if number >= 0 else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse date string into date object.

    Supports ISO and common US formats. Unparseable input is treated as
    absent.
    """
    if not value:
        return None

    value = str(value).strip()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass

    logger.debug(f"Could not parse date: {value}")
    return None


def _parse_flag(value: Optional[str]) -> Optional[bool]:
    """Parse a yes/no style flag; anything unrecognized is absent."""
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def validate_row(row_number: int, record: Mapping[str, Any]) -> Tuple[Optional[DonorRecord], List[RowError]]:
    """
    Validate one canonicalized row.

    Args:
        row_number: 1-based data row number
        record: Row keyed by canonical field names

    Returns:
        Tuple of (DonorRecord or None, errors for this row)
    """
    errors: List[RowError] = []

    first_name = _clean(record.get("first_name"))
    if first_name is None:
        errors.append(RowError(row_number, "first_name", "First name is required"))

    last_name = _clean(record.get("last_name"))
    if last_name is None:
        errors.append(RowError(row_number, "last_name", "Last name is required"))

    email = _clean(record.get("email"))
    if email is None:
        errors.append(RowError(row_number, "email", "Email is required"))
    elif not EMAIL_PATTERN.match(email):
        errors.append(RowError(row_number, "email", "Email is invalid"))

    total_raw = _clean(record.get("total_giving"))
    total_giving = _parse_decimal(total_raw)
    if total_raw is None:
        errors.append(RowError(row_number, "total_giving", "Total giving amount is required"))
    elif total_giving is None:
        errors.append(RowError(row_number, "total_giving", "Total giving must be a number"))
    elif total_giving < 0:
        errors.append(RowError(row_number, "total_giving", "Total giving must be a positive number"))
    elif total_giving > MAX_AMOUNT:
        errors.append(RowError(row_number, "total_giving", "Total giving is too large"))

    if errors:
        return None, errors

    donor = DonorRecord(
        first_name=first_name,
        last_name=last_name,
        email=email,
        total_giving=total_giving,
        first_gift_date=_parse_date(_clean(record.get("first_gift_date"))),
        last_gift_date=_parse_date(_clean(record.get("last_gift_date"))),
        largest_gift=_parse_optional_amount(_clean(record.get("largest_gift"))),
        gift_count=_parse_count(_clean(record.get("gift_count"))),
        impact_url=_clean(record.get("impact_url")),
        is_anonymous=_parse_flag(_clean(record.get("is_anonymous"))),
        show_full_name=_parse_flag(_clean(record.get("show_full_name"))),
        show_email=_parse_flag(_clean(record.get("show_email"))),
        allow_sharing=_parse_flag(_clean(record.get("allow_sharing"))),
        opt_out_date=_parse_date(_clean(record.get("opt_out_date"))),
        source_row=row_number,
    )
    return donor, []


def validate_records(records: Iterable[Mapping[str, Any]]) -> ValidationResult:
    """
    Validate rows that were already parsed into dictionaries.

    Keys are matched against COLUMN_ALIASES the same way CSV headers are.

    Example:
        >>> result = validate_records([
        ...     {"first_name": "John", "last_name": "Doe",
        ...      "email": "john@example.com", "total_giving": "250.00"},
        ... ])
        >>> len(result.valid_rows)
        1
    """
    result = ValidationResult()

    for index, record in enumerate(records, start=1):
        result.total_rows += 1

        if not isinstance(record, Mapping):
            result.errors.append(
                RowError(index, PARSE_ERROR_FIELD, "Row is not an object")
            )
            continue

        donor, errors = validate_row(index, canonicalize_record(record))
        if donor is not None:
            result.valid_rows.append(donor)
        else:
            result.errors.extend(errors)

    _log_result(result)
    return result


def _is_blank(cells: List[str]) -> bool:
    return not cells or all(not cell.strip() for cell in cells)


def _iter_csv_rows(raw_csv_text: str) -> Iterator[Tuple[Optional[List[str]], Optional[str]]]:
    """
    Yield (cells, None) per physical CSV record, or (None, message) when a
    record is structurally broken. Blank lines are skipped.
    """
    lines = raw_csv_text.splitlines(keepends=True)
    reader = csv.reader(lines, strict=True)

    while True:
        try:
            cells = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            yield None, f"Malformed CSV row: {e}"
            continue

        if _is_blank(cells):
            continue
        yield cells, None


def parse_and_validate(raw_csv_text: str) -> ValidationResult:
    """
    Parse raw CSV text and validate every data row.

    Args:
        raw_csv_text: Full file contents; the first non-empty line is the
            header row

    Returns:
        ValidationResult with valid DonorRecords and RowErrors

    Example:
        >>> text = "first_name,last_name,email,total_giving\\n" \\
        ...        "John,Doe,john@example.com,250.00\\n" \\
        ...        "Jane,Smith,not-an-email,300\\n"
        >>> result = parse_and_validate(text)
        >>> len(result.valid_rows), [e.field for e in result.errors]
        (1, ['email'])
    """
    result = ValidationResult()

    if raw_csv_text.startswith("\ufeff"):
        raw_csv_text = raw_csv_text[1:]

    rows = _iter_csv_rows(raw_csv_text)

    header: Optional[List[str]] = None
    for cells, problem in rows:
        if cells is not None:
            header = cells
            break
        logger.warning(f"Skipping malformed header line: {problem}")

    if header is None:
        _log_result(result)
        return result

    columns = resolve_headers(header)
    width = len(header)

    for row_number, (cells, problem) in enumerate(rows, start=1):
        result.total_rows += 1

        if cells is None:
            result.errors.append(RowError(row_number, PARSE_ERROR_FIELD, problem))
            continue

        if len(cells) > width:
            result.errors.append(RowError(
                row_number, PARSE_ERROR_FIELD,
                f"Too many fields: expected {width} fields but parsed {len(cells)}",
            ))
            continue
        if len(cells) < width:
            result.errors.append(RowError(
                row_number, PARSE_ERROR_FIELD,
                f"Too few fields: expected {width} fields but parsed {len(cells)}",
            ))
            continue

        record = {canonical: cells[index] for index, canonical in columns.items()}
        donor, errors = validate_row(row_number, record)
        if donor is not None:
            result.valid_rows.append(donor)
        else:
            result.errors.extend(errors)

    _log_result(result)
    return result


def _log_result(result: ValidationResult) -> None:
    if result.errors:
        logger.warning(
            f"Validated {result.total_rows} rows: {len(result.valid_rows)} valid, "
            f"{len(result.invalid_row_numbers)} with errors"
        )
    else:
        logger.info(f"Validated {result.total_rows} rows: all valid")
