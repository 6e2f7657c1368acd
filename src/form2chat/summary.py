"""Review summary — renders committed records as labelled text blocks.

Example for a two-record form::

    Reference 1
    - Name: Ann Lee
    - Email: ann@example.com

    Reference 2
    - Name: Bo Chen
    - CV: cv.pdf (application/pdf)
"""

from __future__ import annotations

import json
from typing import Any

from form2chat.models.form import FormSpec
from form2chat.models.state import Record


def format_value(value: Any) -> str:
    """Render one stored value for display; empty means "omit the line"."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return ", ".join(s for s in (format_value(v) for v in value) if s)
    if isinstance(value, dict):
        # File values: {file_id, name, mime, size_bytes}
        if value.get("name") and value.get("mime"):
            return f"{value['name']} ({value['mime']})"
        return json.dumps(value, indent=2, ensure_ascii=False)
    return str(value)


def build_summary(form: FormSpec, records: list[Record]) -> str:
    """Render every record as a numbered block, one line per non-empty value."""
    if not records:
        return f"(No {form.record_label.lower()}s captured)"

    lines: list[str] = []
    for number, record in enumerate(records, start=1):
        if number > 1:
            lines.append("")
        lines.append(f"{form.record_label} {number}")
        for field in form.fields:
            text = format_value((record or {}).get(field.id))
            if text == "":
                continue
            lines.append(f"- {field.label}: {text}")
    return "\n".join(lines)


def build_review_payload(form: FormSpec, records: list[Record]) -> dict:
    """Raw records plus ``[{id, label}]`` field order for renderers."""
    return {
        "records": [dict(r) for r in records],
        "field_order": form.field_order(),
    }
