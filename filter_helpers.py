from typing import Optional

from pydantic import ValidationError

VALID_CONDITIONS = {"New", "Good", "Fair", "Poor"}
VALID_AVAILABILITY = {"available", "borrowed"}
VALID_LOG_STATUSES = {"Borrowed", "Returned"}
VALID_SORTS = {"name", "category", "condition", "available_quantity", "total_quantity", "updated_at"}
VALID_ORDERS = {"asc", "desc"}


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_condition(condition: Optional[str]) -> Optional[str]:
    if condition in VALID_CONDITIONS:
        return condition
    return None


def normalize_availability(availability: Optional[str]) -> Optional[str]:
    if availability in VALID_AVAILABILITY:
        return availability
    return None


def normalize_log_status(status: Optional[str]) -> Optional[str]:
    """Accepts "borrowed"/"returned" from the UI filter buttons; "all" means no filter."""
    if not status:
        return None
    status = status.strip().capitalize()
    if status in VALID_LOG_STATUSES:
        return status
    return None


def normalize_sort(sort: str) -> str:
    if sort in VALID_SORTS:
        return sort
    return "name"


def normalize_order(order: str) -> str:
    if order in VALID_ORDERS:
        return order
    return "asc"


def normalize_limit(limit: int, *, min_value: int = 1, max_value: int = 500) -> int:
    if limit < min_value:
        return min_value
    if limit > max_value:
        return max_value
    return limit


def normalize_offset(offset: int) -> int:
    if offset < 0:
        return 0
    return offset


def form_errors(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value").removeprefix("Value error, ")
        messages.append(f"{field}: {msg}" if field else msg)
    return messages
