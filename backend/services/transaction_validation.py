"""Field validation for ledger transactions.

Every check runs before anything is raised so the caller gets the full
``{field: message}`` map in one ``ValidationError``.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from config import settings
from errors import ValidationError
from models import TransactionType
from schemas.transaction import TransactionCreate, TransactionUpdate

MAX_NOTES_LENGTH = 500

_VALID_TYPES = {t.value for t in TransactionType}


def _check_type(value: str, errors: dict[str, str]) -> None:
    if value not in _VALID_TYPES:
        errors["type"] = "Transaction type must be BUY or SELL"


def _check_date(value: date, errors: dict[str, str], today: date) -> None:
    if value > today:
        errors["date"] = "Date cannot be in the future"


def _check_quantity(value: Decimal, errors: dict[str, str]) -> None:
    if not value.is_finite() or value <= 0:
        errors["quantity"] = "Quantity must be greater than 0"


def _check_price(value: Decimal, errors: dict[str, str]) -> None:
    if not value.is_finite() or value <= 0:
        errors["price_per_unit"] = "Price must be greater than 0"


def _check_fees(value: Decimal, errors: dict[str, str]) -> None:
    if not value.is_finite() or value < 0:
        errors["fees"] = "Fees cannot be negative"


def _check_currency(value: str, errors: dict[str, str]) -> None:
    if not value or not value.strip():
        errors["currency"] = "Currency is required"
    elif value.strip().upper() not in settings.supported_currencies:
        errors["currency"] = (
            f"Unsupported currency {value!r}; expected one of "
            f"{', '.join(sorted(settings.supported_currencies))}"
        )


def _check_notes(value: Optional[str], errors: dict[str, str]) -> None:
    if value is not None and len(value) > MAX_NOTES_LENGTH:
        errors["notes"] = f"Notes cannot exceed {MAX_NOTES_LENGTH} characters"


def validate_transaction_create(data: TransactionCreate, today: Optional[date] = None) -> None:
    """Validate a new transaction.

    Raises:
        ValidationError: With one entry per offending field
    """
    today = today or date.today()
    errors: dict[str, str] = {}

    if data.listing_id is None and data.listing is None:
        errors["listing"] = "A listing id or a new listing is required"
    elif data.listing_id is not None and data.listing is not None:
        errors["listing"] = "Give either a listing id or a new listing, not both"

    _check_type(data.type, errors)
    _check_date(data.date, errors, today)
    _check_quantity(data.quantity, errors)
    _check_price(data.price_per_unit, errors)
    _check_currency(data.currency, errors)
    if data.fees is not None:
        _check_fees(data.fees, errors)
    _check_notes(data.notes, errors)

    if errors:
        raise ValidationError("Transaction data is invalid", errors)


def validate_transaction_update(data: TransactionUpdate, today: Optional[date] = None) -> None:
    """Validate the fields present in a partial update.

    Raises:
        ValidationError: With one entry per offending field
    """
    today = today or date.today()
    errors: dict[str, str] = {}
    fields = data.model_fields_set

    if "type" in fields:
        _check_type(data.type, errors)
    if "date" in fields:
        if data.date is None:
            errors["date"] = "Date is required"
        else:
            _check_date(data.date, errors, today)
    if "quantity" in fields:
        if data.quantity is None:
            errors["quantity"] = "Quantity is required"
        else:
            _check_quantity(data.quantity, errors)
    if "price_per_unit" in fields:
        if data.price_per_unit is None:
            errors["price_per_unit"] = "Price is required"
        else:
            _check_price(data.price_per_unit, errors)
    if "currency" in fields:
        _check_currency(data.currency, errors)
    if "fees" in fields and data.fees is not None:
        _check_fees(data.fees, errors)
    if "notes" in fields:
        _check_notes(data.notes, errors)

    if errors:
        raise ValidationError("Transaction data is invalid", errors)
