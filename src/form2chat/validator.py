"""Answer validation — turns raw chat text into a typed field value.

``validate(field, raw)`` is pure: it returns the value to store or raises
:class:`~form2chat.errors.AnswerError` whose message is shown to the user
as-is.  Normalisation rules:

  - text: trimmed; email fields must look like local@domain.tld
  - number: int when the text is integral, float otherwise; bounds inclusive
  - date: always stored as canonical ``YYYY-MM-DD``
  - choice: case-insensitive label match, then 1-based index; the stored
    value is always the option label
  - file: never accepted as text (uploads arrive through ``upload_ack``)
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from form2chat.errors import AnswerError
from form2chat.models.form import (
    ChoiceField,
    DateField,
    FileField,
    NumberField,
    TextField,
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# 1-based option index; ASCII only, int() rejects superscripts like "²"
_INDEX_RE = re.compile(r"[0-9]+")

# Accepted non-ISO date spellings, tried in order after date.fromisoformat.
_DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)

MSG_REQUIRED = "Please enter a value."
MSG_EMAIL = "Please enter a valid email address."
MSG_NUMBER = "Please enter a valid number."
MSG_DATE = "Please enter a valid date (for example 2024-05-31)."
MSG_UPLOAD = "Please use the upload button to attach a file for this question."


def _fmt_number(n: float) -> str:
    return f"{n:g}"


def _parse_number(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        n = float(text)
    except ValueError:
        raise AnswerError(MSG_NUMBER) from None
    if not math.isfinite(n):
        raise AnswerError(MSG_NUMBER)
    return n


def _parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise AnswerError(MSG_DATE)


def _match_option(field: ChoiceField, text: str) -> str:
    # Labels win over indexes so numeric labels ("1", "5") stay reachable
    folded = text.casefold()
    for option in field.options:
        if option.strip().casefold() == folded:
            return option

    if _INDEX_RE.fullmatch(text):
        n = int(text)
        if 1 <= n <= len(field.options):
            return field.options[n - 1]

    listing = ", ".join(f"{i}. {o}" for i, o in enumerate(field.options, start=1))
    raise AnswerError(f"Please choose one of the options: {listing}")


def validate(field, raw: str) -> Any:
    """Validate ``raw`` against ``field`` and return the value to store.

    Raises:
        AnswerError: with a user-facing message if the answer is unusable.
    """
    if isinstance(field, FileField):
        raise AnswerError(MSG_UPLOAD)

    text = (raw or "").strip()
    if text == "":
        if field.required:
            raise AnswerError(MSG_REQUIRED)
        # Optional and skipped
        return "" if isinstance(field, TextField) else None

    if isinstance(field, TextField):
        if field.is_email and not _EMAIL_RE.match(text):
            raise AnswerError(MSG_EMAIL)
        return text

    if isinstance(field, NumberField):
        n = _parse_number(text)
        if field.min is not None and n < field.min:
            raise AnswerError(f"Please enter a number no less than {_fmt_number(field.min)}.")
        if field.max is not None and n > field.max:
            raise AnswerError(f"Please enter a number no greater than {_fmt_number(field.max)}.")
        return n

    if isinstance(field, DateField):
        return _parse_date(text).isoformat()

    if isinstance(field, ChoiceField):
        return _match_option(field, text)

    raise TypeError(f"Unsupported field kind: {getattr(field, 'kind', type(field).__name__)}")
