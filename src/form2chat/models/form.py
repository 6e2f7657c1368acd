"""Form definition models — the schema a conversation collects.

Each field kind maps to a specific validation rule and input hint:

    - text: free text, optionally constrained to an email address
    - number: numeric input with optional inclusive min/max bounds
    - date: calendar date, always stored as ``YYYY-MM-DD``
    - choice: one option out of an ordered list (by label or 1-based index)
    - file: an upload handled outside the chat; only metadata reaches the engine

The discriminated ``FieldSpec`` union uses ``kind`` as its discriminator.
All models are frozen: a form is treated as a constant once loaded.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


# --- Base field type ---

class BaseField(BaseModel):
    """Keys shared by all field kinds."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    label: str
    required: bool = False


# --- Field kinds ---

class TextField(BaseField):
    """Free text; ``is_email`` requires a local@domain.tld shape."""

    kind: Literal["text"] = "text"
    is_email: bool = False


class NumberField(BaseField):
    """Numeric answer with optional inclusive bounds."""

    kind: Literal["number"] = "number"
    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def _chk(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must be <= max")
        return self


class DateField(BaseField):
    """Calendar date."""

    kind: Literal["date"] = "date"


class ChoiceField(BaseField):
    """Pick one of ``options``; the stored value is always the option label."""

    kind: Literal["choice"] = "choice"
    options: List[str] = Field(min_length=1)


class FileField(BaseField):
    """Upload slot; ``accept`` is a MIME hint for the renderer."""

    kind: Literal["file"] = "file"
    accept: Optional[List[str]] = None


FieldSpec = Annotated[
    Union[TextField, NumberField, DateField, ChoiceField, FileField],
    Field(discriminator="kind"),
]


# --- Form ---

class FormSpec(BaseModel):
    """A complete form definition.

    ``target_record_count`` is how many records (e.g. references) one
    session must collect; every record asks all ``fields`` in order.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: Optional[str] = None
    description: Optional[str] = None
    # Noun used in prompts and summaries ("Reference 1 of 3")
    record_label: str = "Record"
    target_record_count: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("target_record_count", "targetCount"),
    )
    fields: List[FieldSpec] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_field_ids(self):
        seen: set[str] = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(f"duplicate field id '{f.id}'")
            seen.add(f.id)
        return self

    @property
    def fields_per_record(self) -> int:
        return len(self.fields)

    def field_order(self) -> list[dict]:
        """Return ``[{id, label}]`` in declaration order."""
        return [{"id": f.id, "label": f.label} for f in self.fields]
