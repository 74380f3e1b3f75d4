from decimal import Decimal, ROUND_HALF_UP


def to_minor_units(price) -> int:
    """Major to minor currency units (rupees -> paise), rounding half up."""
    return int(
        (Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
