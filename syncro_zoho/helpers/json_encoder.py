import json
import uuid
from datetime import date, datetime
from decimal import Decimal


class EnhancedJSONEncoder(json.JSONEncoder):
    """
    Encodes dates as ISO strings and Decimals as exact JSON numbers.

    The json module can only emit floats for non-integral values, so those
    Decimals are written as placeholder strings and swapped back for their
    exact digits in ``encode``.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._token_prefix = f"__decimal_{uuid.uuid4().hex}_"
        self.raw_numbers = {}

    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()   # "2025-09-08"
        if isinstance(obj, Decimal):
            if not obj.is_finite():
                raise ValueError(f"Cannot encode {obj} as a JSON number")
            if obj == obj.to_integral_value():
                return int(obj)
            token = f"{self._token_prefix}{len(self.raw_numbers)}"
            self.raw_numbers[token] = format(obj, 'f')
            return token
        return super().default(obj)

    def encode(self, o):
        self.raw_numbers = {}
        text = super().encode(o)
        for token, digits in self.raw_numbers.items():
            text = text.replace(f'"{token}"', digits)
        return text


def dumps(payload):
    """Serialize a request body with Decimal and date support."""
    return json.dumps(payload, cls=EnhancedJSONEncoder)
