"""Form endpoints — the loaded form definitions, for renderers.

Read-only; the definitions come from the ``FormStore`` loaded at startup.
"""

from fastapi import APIRouter, Depends

from form2chat.forms import FormStore

from form2chat_server.dependencies import get_forms

router = APIRouter(prefix="/forms", tags=["forms"])


@router.get("")
def list_forms(
    forms: FormStore = Depends(get_forms),
) -> list[dict]:
    """Return a short description of every loaded form."""
    return [
        {
            "id": form.id,
            "title": form.title,
            "description": form.description,
            "record_label": form.record_label,
            "target_record_count": form.target_record_count,
            "field_count": form.fields_per_record,
        }
        for form in forms.list_forms()
    ]


@router.get("/{form_id}")
def get_form(
    form_id: str,
    forms: FormStore = Depends(get_forms),
) -> dict:
    """Return the full definition of one form (404 if unknown)."""
    return forms.get(form_id).model_dump(mode="json")
