def format_cents(cents: int) -> str:
    """Render an integer cent amount as a USD string, e.g. ``-$1,234.50``."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{remainder:02d}"


def dollars_to_cents(amount: float) -> int:
    return int(round(amount * 100))


def mask_account_number(value: str | None) -> str | None:
    if not value:
        return value
    if len(value) <= 4:
        return "****"
    return "****" + value[-4:]
