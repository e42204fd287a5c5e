"""Number formatting for chart titles and axes."""

from decimal import Decimal

Number = Decimal | float | int


def format_price(price: Number) -> str:
    """Full price with cents and thousands separators, e.g. ``$42,069.42``."""
    return f"${price:,.2f}"


def format_price_short(price: Number) -> str:
    """Compact price for axis labels, e.g. ``$1.5k`` or ``$1.5M``."""
    if price >= 1_000_000:
        return f"${price / 1_000_000:.1f}M"
    if price >= 1_000:
        return f"${price / 1_000:.1f}k"
    return f"${price:.2f}"


def format_volume(volume: Number) -> str:
    if volume >= 1_000_000_000:
        return f"{volume / 1_000_000_000:.1f}B"
    if volume >= 1_000_000:
        return f"{volume / 1_000_000:.1f}M"
    if volume >= 1_000:
        return f"{volume / 1_000:.1f}K"
    return f"{volume:.0f}"


def format_change(change_pct: Number) -> str:
    """Signed 24h change with an arrow, e.g. ``▲ 1.23%``."""
    arrow = "▲" if change_pct >= 0 else "▼"
    return f"{arrow} {abs(change_pct):.2f}%"
