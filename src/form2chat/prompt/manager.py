"""PromptManager — Jinja2-based renderer for the messages the engine sends.

Loads templates from the ``template/`` directory:

    ask.jinja2     — one field of the record being filled (with optional
                     acknowledgement or corrective error)
    review.jinja2  — the summary of all records, awaiting submit
    done.jinja2    — the summary after submission

Only ``ask`` messages are ever decorated with acknowledgements; review and
done are rendered from the clean summary alone.
"""

from __future__ import annotations

from pathlib import Path

import jinja2

from form2chat.models.form import FormSpec


class PromptManager:
    """Jinja2-based message renderer.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Keep whitespace control simple — templates use explicit trim
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context).strip()

    def render_ask(
        self,
        form: FormSpec,
        field,
        *,
        record_number: int,
        acknowledgement: str | None = None,
        error: str | None = None,
    ) -> str:
        """Prompt for ``field`` of record ``record_number`` (1-based)."""
        return self.render(
            "ask.jinja2",
            form=form,
            field=field,
            record_number=record_number,
            acknowledgement=acknowledgement,
            error=error,
        )

    def render_review(self, summary: str) -> str:
        return self.render("review.jinja2", summary=summary)

    def render_done(self, summary: str) -> str:
        return self.render("done.jinja2", summary=summary)
