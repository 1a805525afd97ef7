from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def to_decimal(value, field_name="value"):
    """
    Convert a JSON/CSV value to Decimal without passing through binary float.

    Args:
        value: str, int, float or Decimal as received from an API.
        field_name (str): Used in the error message.

    Returns:
        Decimal: The parsed value.

    Raises:
        ValueError: If the value is empty or not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field_name} is empty")

    text = str(value).strip().replace(",", "")
    if not text:
        raise ValueError(f"{field_name} is empty")

    try:
        result = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"{field_name} is not a number: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"{field_name} is not a finite number: {value!r}")
    return result


def to_minor_units(amount):
    """Convert a currency amount to whole cents, rounding half up."""
    cents = (to_decimal(amount, "amount") * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)
