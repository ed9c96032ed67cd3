from typing import Any, Optional

from .schema import parse_date


def format_date(value: Optional[str]) -> str:
    """YYYY-MM-DD (or ISO datetime) -> DD.MM.YYYY; "-" when empty."""
    if not value:
        return "-"
    d = parse_date(value)
    return d.strftime("%d.%m.%Y") if d else str(value)


def format_currency(amount: Any) -> str:
    """German euro notation: 1234.5 -> "1.234,50 €"."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return "-"
    s = f"{amount:,.2f}"  # 1,234.50
    s = s.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
    return f"{s} €"
