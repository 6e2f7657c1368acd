"""FormStore — loads every form definition from ``forms/`` into typed models.

This is the single source of truth for form schemas at runtime.  The store
is loaded once at startup and provides lookup by form id.

Usage::

    store = FormStore()             # defaults to forms/ relative to repo root
    store.load()                    # parse every *.yaml / *.yml / *.json file

    form = store.get("references")
    form.fields[0].label

Form files may use the current layout (``kind``, ``is_email``, ``accept``)
or the legacy JSON layout (``type: select|radio``, ``validation: {...}``,
``targetCount``); legacy keys are normalised before validation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from form2chat.constants import DEFAULT_FORM_DIR, FORM_FILE_SUFFIXES
from form2chat.errors import SchemaError
from form2chat.models.form import FormSpec

logger = logging.getLogger(__name__)

# Legacy ``type`` values and the field kind they map to
_LEGACY_KINDS: dict[str, str] = {
    "text": "text",
    "number": "number",
    "date": "date",
    "select": "choice",
    "radio": "choice",
    "file": "file",
}


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML (or JSON) file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing form file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _normalise_field(raw: Any, source: str) -> Any:
    """Translate a legacy field dict into the current layout.

    Dicts that already carry ``kind`` are returned untouched.

    Raises:
        SchemaError: if a legacy ``validation`` block is not a mapping.
    """
    if not isinstance(raw, dict) or "kind" in raw:
        return raw

    field = {k: v for k, v in raw.items() if k not in ("type", "validation")}
    legacy_type = raw.get("type")
    if legacy_type is not None:
        field["kind"] = _LEGACY_KINDS.get(legacy_type, legacy_type)

    validation = raw.get("validation") or {}
    if not isinstance(validation, dict):
        raise SchemaError(
            f"Invalid form schema: {source}: field '{raw.get('id')}' has a non-mapping validation block"
        )
    if validation.get("kind") == "email":
        field["is_email"] = True
    for bound in ("min", "max"):
        if bound in validation:
            field[bound] = validation[bound]
    if "allowedMime" in validation:
        field["accept"] = validation["allowedMime"]
    return field


def parse_form(raw: Any, *, source: str = "<memory>") -> FormSpec:
    """Validate a parsed form document into a :class:`FormSpec`.

    Raises:
        SchemaError: if the id or field list is missing or any field is invalid.
    """
    if not isinstance(raw, dict) or not raw.get("id") or not isinstance(raw.get("fields"), list):
        raise SchemaError(f"Invalid form schema: {source} (missing id or fields)")

    doc = dict(raw)
    doc["fields"] = [_normalise_field(f, source) for f in raw["fields"]]
    try:
        return FormSpec.model_validate(doc)
    except ValidationError as exc:
        raise SchemaError(f"Invalid form schema: {source}: {exc}") from exc


def load_form(path: Path | str) -> FormSpec:
    """Load and validate one form file."""
    return parse_form(load_yaml(path), source=str(path))


# ---------------------------------------------------------------------------
# FormStore
# ---------------------------------------------------------------------------

class FormStore:
    """Loads all form files from a directory and provides typed lookup.

    Attributes populated after :meth:`load`:

        forms — dict[form_id, FormSpec]
    """

    def __init__(self, form_dir: str | Path | None = None) -> None:
        if form_dir is None:
            form_dir = DEFAULT_FORM_DIR or find_repo_root() / "forms"
        self._base = Path(form_dir)

        # Populated by load() / add()
        self.forms: dict[str, FormSpec] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every form file under the form directory.

        Call this once at startup.  Raises ``FileNotFoundError`` if the
        directory is missing and :class:`SchemaError` on the first invalid
        definition (a broken form is fatal, never recovered per turn).
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing form directory: {self._base}")

        for path in sorted(self._base.iterdir()):
            if path.suffix not in FORM_FILE_SUFFIXES:
                continue
            self.add(load_form(path))

        logger.info("FormStore loaded: %d forms from %s", len(self.forms), self._base)

    def add(self, form: FormSpec) -> None:
        """Register a form; a second form with the same id is a schema error."""
        if form.id in self.forms:
            raise SchemaError(f"Duplicate form id '{form.id}'")
        self.forms[form.id] = form

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get(self, form_id: str) -> FormSpec:
        """Return the form with ``form_id``.

        Raises:
            KeyError: if no such form was loaded.
        """
        try:
            return self.forms[form_id]
        except KeyError:
            raise KeyError(f"Unknown form: {form_id}") from None

    def list_forms(self) -> list[FormSpec]:
        """Return all loaded forms ordered by id."""
        return [self.forms[k] for k in sorted(self.forms)]
