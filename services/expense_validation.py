"""Field-level validation for expense payloads.

Both validators are pure: they read a candidate field mapping (usually the
decoded JSON body) and return a normalized field map ready to be written to
the store, or raise an ``ExpenseValidationError`` subclass.

``validate_create`` enforces required fields. ``validate_partial`` only checks
the fields that are present, so an omitted field (left untouched by the
update) is distinguished from a present-but-invalid one (which rejects the
whole request).
"""
import math
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Union

from errors import InvalidAmount, InvalidDate, InvalidTitle

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
# BSON int64 bounds; larger whole numbers are stored as doubles
INT64_MIN, INT64_MAX = -2 ** 63, 2 ** 63 - 1


def _is_valid_title(value: Any) -> bool:
    return isinstance(value, str) and len(value) >= MIN_TITLE_LENGTH


def _normalize_amount(value: Any, message: str = None) -> Union[int, float]:
    """
    Returns the amount in a BSON-encodable numeric type, or raises InvalidAmount.

    Whole numbers outside int64 become floats; ones beyond the float range
    are rejected.
    """
    # bool is an int subclass but never an amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAmount(message)
    if isinstance(value, int) and not INT64_MIN <= value <= INT64_MAX:
        try:
            value = float(value)
        except OverflowError:
            raise InvalidAmount(message)
    if not (math.isfinite(value) and value > 0):
        raise InvalidAmount(message)
    return value


def parse_date(value: Any) -> datetime:
    """
    Parses a date payload value into an aware UTC datetime.

    Accepts ISO-8601 strings (date-only, trailing 'Z' and offsets included),
    datetime instances and epoch milliseconds. Naive values are read as UTC.
    The result is truncated to milliseconds, the precision of a BSON datetime.
    Raises InvalidDate for anything else, including instants outside the
    datetime range once shifted to UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDate()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            if not math.isfinite(value):
                raise InvalidDate()
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InvalidDate()
    else:
        raise InvalidDate()

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        parsed = parsed.astimezone(timezone.utc)
    except OverflowError:
        raise InvalidDate()
    return parsed.replace(microsecond=parsed.microsecond // 1000 * 1000)


def validate_create(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validates a full expense payload. The first failing field wins."""
    title = fields.get("title")
    if not _is_valid_title(title):
        raise InvalidTitle("Title is required and must be at least 3 characters long")

    amount = _normalize_amount(fields.get("amount"), "Amount is required and must be a number greater than 0")

    if fields.get("date") is None:
        raise InvalidDate("Date is required and must be a valid date")
    try:
        parsed_date = parse_date(fields["date"])
    except InvalidDate:
        raise InvalidDate("Date is required and must be a valid date")

    record = {"title": title, "amount": amount}
    if "category" in fields:
        record["category"] = fields["category"]
    record["date"] = parsed_date
    return record


def validate_partial(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validates the fields present in an update payload.

    Keys outside title/amount/category/date are ignored; an empty result is
    a valid no-op update.
    """
    update_fields: Dict[str, Any] = {}

    if "title" in fields:
        if not _is_valid_title(fields["title"]):
            raise InvalidTitle()
        update_fields["title"] = fields["title"]

    if "amount" in fields:
        update_fields["amount"] = _normalize_amount(fields["amount"])

    if "category" in fields:
        update_fields["category"] = fields["category"]

    if "date" in fields:
        update_fields["date"] = parse_date(fields["date"])

    logger.debug(f"Partial update validated with fields: {sorted(update_fields)}")
    return update_fields
