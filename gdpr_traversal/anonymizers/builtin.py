"""
Built-in anonymizers.

text_anonymizer: random lowercase text of the same length.
date_anonymizer: random date, keeping the value's type.
"""

import random
import string
from datetime import date, datetime, timedelta
from typing import Any, Optional

from gdpr_traversal.anonymizers.base import FieldContext

TEXT_ANONYMIZER_ID = "text_anonymizer"
DATE_ANONYMIZER_ID = "date_anonymizer"


class TextAnonymizer:
    """Replaces text with random characters, respecting the field's max length."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def anonymize(self, value: Any, context: FieldContext) -> Any:
        if value is None or value == "":
            return value
        length = len(str(value))
        max_length = context.definition.max_length
        if max_length is not None:
            length = min(length, max_length)
        return "".join(self._rng.choice(string.ascii_lowercase) for _ in range(length))


class DateAnonymizer:
    """
    Replaces a date with a random one between 1970-01-01 and 2000-12-31.

    Accepts datetime, date or ISO-8601 strings and returns the same kind.
    """

    earliest = date(1970, 1, 1)
    latest = date(2000, 12, 31)

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def anonymize(self, value: Any, context: FieldContext) -> Any:
        if value is None or value == "":
            return value
        span = (self.latest - self.earliest).days
        replacement = self.earliest + timedelta(days=self._rng.randint(0, span))

        if isinstance(value, datetime):
            return datetime.combine(replacement, datetime.min.time(), tzinfo=value.tzinfo)
        if isinstance(value, date):
            return replacement
        if isinstance(value, str):
            # Raises ValueError on junk input; the erasure processor records it.
            parsed = datetime.fromisoformat(value)
            if "T" in value or " " in value:
                return datetime.combine(replacement, datetime.min.time(), tzinfo=parsed.tzinfo).isoformat()
            return replacement.isoformat()
        raise TypeError(
            f"Cannot anonymize {type(value).__name__} value of field {context.field_name} as a date"
        )
