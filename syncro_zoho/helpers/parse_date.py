from datetime import date, datetime, timezone


def parse_datetime(value, formats=None):
    """
    Parse a stored timestamp into an aware UTC datetime.

    ISO-8601 is tried first (what we write), then a few formats older
    settings files were written with. Naive values are taken as UTC.

    Args:
        value: String or datetime representation
        formats: List of datetime format strings to try (optional)

    Returns:
        datetime: Parsed datetime in UTC, or None when the value is empty

    Raises:
        ValueError: If the value cannot be parsed with any format
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'

        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None

        if parsed is None:
            if formats is None:
                formats = [
                    '%Y-%m-%d %H:%M:%S',
                    '%Y-%m-%d %H:%M:%S.%f',
                    '%m/%d/%Y %H:%M:%S',
                    '%m/%d/%Y %I:%M:%S %p',
                ]
            for fmt in formats:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue

        if parsed is None:
            raise ValueError(
                f"Unable to parse timestamp '{value}'. Expected ISO-8601, "
                f"e.g. 2025-01-31T12:00:00+00:00"
            )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value):
    """Format a datetime for the settings file (ISO-8601 UTC or empty)."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def first_of_month(today=None):
    """First day of the month containing ``today``."""
    today = today or date.today()
    if isinstance(today, datetime):
        today = today.date()
    return today.replace(day=1)
