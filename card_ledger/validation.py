"""Input validation for cards and expenses.

Every function here runs before any mutation. Problems are collected per
field and raised together as a single ``ValidationError`` so the caller
can report all of them at once. On success the normalized values are
returned (amounts as 2-place ``Decimal``, enums as enum members, card
numbers without spaces).
"""

import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from card_ledger.exceptions import ValidationError
from card_ledger.models.enums import CardNetwork, ExpenseCategory, RecurringFrequency

E = TypeVar("E", bound=Enum)

CENTS = Decimal("0.01")
MAX_DESCRIPTION_LENGTH = 200
MAX_NOTES_LENGTH = 500
MIN_CARD_NAME_LENGTH = 2
CARD_NUMBER_RE = re.compile(r"^\d{16}$")
HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def _error(errors: list[dict[str, str]], field: str, message: str) -> None:
    errors.append({"field": field, "message": message})


def _raise_if(errors: list[dict[str, str]]) -> None:
    if errors:
        raise ValidationError("Validation failed", errors=errors)


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """Coerce a numeric input to a 2-place Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", errors=[{"field": field, "message": "must be a number"}])
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(
            f"{field} must be a number",
            errors=[{"field": field, "message": "must be a number"}],
        ) from e
    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", errors=[{"field": field, "message": "must be finite"}])
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    """Resolve an enum member from its value (or the member itself)."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {field}",
            errors=[{"field": field, "message": f"must be one of: {allowed}"}],
        ) from e


def normalize_card_number(card_number: str) -> str:
    return re.sub(r"\s", "", card_number or "")


def _amount_into(errors: list[dict[str, str]], value: Any, field: str) -> Decimal | None:
    try:
        return to_amount(value, field)
    except ValidationError as e:
        errors.extend(e.errors)
        return None


def _enum_into(errors: list[dict[str, str]], enum_cls: type[E], value: Any, field: str) -> E | None:
    try:
        return parse_enum(enum_cls, value, field)
    except ValidationError as e:
        errors.extend(e.errors)
        return None


def validate_card_fields(
    card_name: str,
    card_number: str,
    card_network: Any,
    expiry_month: int,
    expiry_year: int,
    credit_limit: Any,
    current_balance: Any = 0,
    interest_rate: Any = None,
    color: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Validate the fields of a new card and return them normalized."""
    errors: list[dict[str, str]] = []
    today = today or date.today()

    name = (card_name or "").strip()
    if len(name) < MIN_CARD_NAME_LENGTH:
        _error(errors, "card_name", f"must be at least {MIN_CARD_NAME_LENGTH} characters")

    number = normalize_card_number(card_number)
    if not CARD_NUMBER_RE.match(number):
        _error(errors, "card_number", "must be exactly 16 digits")

    network = _enum_into(errors, CardNetwork, card_network, "card_network")

    if not isinstance(expiry_month, int) or not 1 <= expiry_month <= 12:
        _error(errors, "expiry_month", "must be between 1 and 12")
    if not isinstance(expiry_year, int) or expiry_year < today.year:
        _error(errors, "expiry_year", "must be current year or later")

    limit = _amount_into(errors, credit_limit, "credit_limit")
    if limit is not None and limit < 0:
        _error(errors, "credit_limit", "must be 0 or greater")

    balance = _amount_into(errors, current_balance or 0, "current_balance")
    if balance is not None and balance < 0:
        _error(errors, "current_balance", "must be 0 or greater")
    if limit is not None and balance is not None and balance > limit:
        _error(errors, "current_balance", "cannot exceed credit limit")

    rate = None
    if interest_rate is not None:
        rate = _amount_into(errors, interest_rate, "interest_rate")
        if rate is not None and not Decimal("0") <= rate <= Decimal("100"):
            _error(errors, "interest_rate", "must be between 0 and 100")

    if color is not None and not HEX_COLOR_RE.match(color):
        _error(errors, "color", "must be a valid hex color")

    _raise_if(errors)
    return {
        "card_name": name,
        "card_number": number,
        "card_network": network,
        "expiry_month": expiry_month,
        "expiry_year": expiry_year,
        "credit_limit": limit,
        "current_balance": balance,
        "interest_rate": rate,
        "color": color,
    }


def validate_card_update(
    card_name: str | None = None,
    credit_limit: Any = None,
    interest_rate: Any = None,
    color: str | None = None,
) -> dict[str, Any]:
    """Validate only the supplied card fields."""
    errors: list[dict[str, str]] = []
    changes: dict[str, Any] = {}

    if card_name is not None:
        name = card_name.strip()
        if len(name) < MIN_CARD_NAME_LENGTH:
            _error(errors, "card_name", f"must be at least {MIN_CARD_NAME_LENGTH} characters")
        changes["card_name"] = name
    if credit_limit is not None:
        limit = _amount_into(errors, credit_limit, "credit_limit")
        if limit is not None and limit < 0:
            _error(errors, "credit_limit", "must be 0 or greater")
        changes["credit_limit"] = limit
    if interest_rate is not None:
        rate = _amount_into(errors, interest_rate, "interest_rate")
        if rate is not None and not Decimal("0") <= rate <= Decimal("100"):
            _error(errors, "interest_rate", "must be between 0 and 100")
        changes["interest_rate"] = rate
    if color is not None:
        if not HEX_COLOR_RE.match(color):
            _error(errors, "color", "must be a valid hex color")
        changes["color"] = color

    _raise_if(errors)
    return changes


def validate_payment_amount(amount: Any) -> Decimal:
    value = to_amount(amount)
    if value <= 0:
        raise ValidationError(
            "Payment amount must be greater than 0",
            errors=[{"field": "amount", "message": "must be greater than 0"}],
        )
    return value


def to_datetime(value: Any, field: str = "date") -> datetime:
    """Coerce a ``datetime``, ``date`` or ISO-8601 string to a naive local datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        # fromisoformat before 3.11 does not accept a trailing Z
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(
                f"{field} must be an ISO-8601 date",
                errors=[{"field": field, "message": "must be an ISO-8601 date"}],
            ) from e
    else:
        raise ValidationError(
            f"{field} must be an ISO-8601 date",
            errors=[{"field": field, "message": "must be an ISO-8601 date"}],
        )
    # Stored dates are naive local time so they sort against datetime.now()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _datetime_into(errors: list[dict[str, str]], value: Any, field: str) -> datetime | None:
    try:
        return to_datetime(value, field)
    except ValidationError as e:
        errors.extend(e.errors)
        return None


def _flag_into(errors: list[dict[str, str]], value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        _error(errors, field, "must be true or false")
        return False
    return value


def _text_into(errors: list[dict[str, str]], value: Any, field: str) -> str | None:
    """Trimmed optional text; blank becomes ``None``."""
    if value is None:
        return None
    if not isinstance(value, str):
        _error(errors, field, "must be a string")
        return None
    return value.strip() or None


def _tags_into(errors: list[dict[str, str]], value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
        _error(errors, "tags", "must be a list of strings")
        return []
    return [t.strip() for t in value if t.strip()]


def validate_expense_fields(
    amount: Any,
    description: str,
    category: Any,
    notes: str | None = None,
    is_recurring: bool = False,
    recurring_frequency: Any = None,
    date: Any = None,
    tags: Any = None,
    is_essential: bool = False,
    subcategory: str | None = None,
    merchant: str | None = None,
    location: str | None = None,
    receipt_url: str | None = None,
) -> dict[str, Any]:
    """Validate the fields of a new expense and return them normalized.

    ``date`` is ``None`` in the result when not supplied; the caller
    stamps the creation time.
    """
    errors: list[dict[str, str]] = []

    value = _amount_into(errors, amount, "amount")
    if value is not None and value <= 0:
        _error(errors, "amount", "must be greater than 0")

    text = description.strip() if isinstance(description, str) else ""
    if not 1 <= len(text) <= MAX_DESCRIPTION_LENGTH:
        _error(errors, "description", f"is required and must be at most {MAX_DESCRIPTION_LENGTH} characters")

    cat = _enum_into(errors, ExpenseCategory, category, "category")

    note = _text_into(errors, notes, "notes")
    if note is not None and len(note) > MAX_NOTES_LENGTH:
        _error(errors, "notes", f"must be at most {MAX_NOTES_LENGTH} characters")

    recurring = _flag_into(errors, is_recurring, "is_recurring")
    frequency = None
    if recurring_frequency is not None:
        frequency = _enum_into(errors, RecurringFrequency, recurring_frequency, "recurring_frequency")
    if recurring and recurring_frequency is None:
        _error(errors, "recurring_frequency", "is required for recurring expenses")

    when = _datetime_into(errors, date, "date") if date is not None else None

    result = {
        "amount": value,
        "description": text,
        "category": cat,
        "notes": note,
        "is_recurring": recurring,
        "recurring_frequency": frequency,
        "date": when,
        "tags": _tags_into(errors, tags),
        "is_essential": _flag_into(errors, is_essential, "is_essential"),
        "subcategory": _text_into(errors, subcategory, "subcategory"),
        "merchant": _text_into(errors, merchant, "merchant"),
        "location": _text_into(errors, location, "location"),
        "receipt_url": _text_into(errors, receipt_url, "receipt_url"),
    }
    _raise_if(errors)
    return result


def validate_expense_update(changes: dict[str, Any]) -> dict[str, Any]:
    """Validate only the supplied expense fields (``None`` means not supplied)."""
    errors: list[dict[str, str]] = []
    result: dict[str, Any] = {}

    for key, value in changes.items():
        if value is None:
            continue
        if key == "amount":
            amount = _amount_into(errors, value, "amount")
            if amount is not None and amount <= 0:
                _error(errors, "amount", "must be greater than 0")
            result[key] = amount
        elif key == "description":
            text = value.strip() if isinstance(value, str) else ""
            if not 1 <= len(text) <= MAX_DESCRIPTION_LENGTH:
                _error(errors, "description", f"must be 1 to {MAX_DESCRIPTION_LENGTH} characters")
            result[key] = text
        elif key == "category":
            result[key] = _enum_into(errors, ExpenseCategory, value, "category")
        elif key == "recurring_frequency":
            result[key] = _enum_into(errors, RecurringFrequency, value, "recurring_frequency")
        elif key == "date":
            result[key] = _datetime_into(errors, value, "date")
        elif key == "tags":
            result[key] = _tags_into(errors, value)
        elif key in ("is_essential", "is_recurring"):
            result[key] = _flag_into(errors, value, key)
        elif key == "notes":
            note = _text_into(errors, value, "notes")
            if note is not None and len(note) > MAX_NOTES_LENGTH:
                _error(errors, "notes", f"must be at most {MAX_NOTES_LENGTH} characters")
            result[key] = note
        else:
            result[key] = _text_into(errors, value, key)

    _raise_if(errors)
    return result
