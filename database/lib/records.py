"""Helpers for turning database rows into JSON-ready values."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

def to_iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string for a timestamp column, None stays None."""
    return value.isoformat() if value else None

def to_day(value: Optional[Union[datetime, date]]) -> Optional[str]:
    """YYYY-MM-DD for a timestamp column."""
    return value.strftime('%Y-%m-%d') if value else None

def to_number(value: Any) -> Optional[Union[int, float]]:
    """Numeric column value as a JSON number.
    
    NUMERIC columns come back as Decimal; whole values are returned as int.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value
