#!/usr/bin/env python3
"""Simulate a form2chat conversation end-to-end with a mocked DB.

Loads the forms from ``forms/``, opens a session for one of them and
answers every prompt until the session is submitted, printing each
engine step along the way.  Along the way it occasionally sends an invalid
answer or a ``back`` command so the re-prompt and rewind paths get
exercised too.

Usage::

    # Default run (references form, random answers)
    python scripts/simulate_chat.py

    # Another form, deterministic answers
    python scripts/simulate_chat.py -f candidate --no-random

    # List available forms
    python scripts/simulate_chat.py --list-forms
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
import uuid
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure project root is on sys.path so we can import both the SDK and
# test mock infrastructure.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "tests"))
sys.path.insert(0, str(_REPO_ROOT / "src"))

from unittest.mock import AsyncMock  # noqa: E402

from helpers.mock_repo import MockRepository  # noqa: E402

from form2chat.engine import ChatEngine  # noqa: E402
from form2chat.forms import FormStore  # noqa: E402
from form2chat.models.form import (  # noqa: E402
    ChoiceField,
    DateField,
    FileField,
    NumberField,
    TextField,
)
from form2chat.models.session import AskStep, DoneStep, ReviewStep, TurnRequest  # noqa: E402
from form2chat.models.state import UploadMetadata  # noqa: E402
from form2chat.phrasing import FixedPhrasing, RandomPhrasing  # noqa: E402

_DEFAULT_FORM = "references"

# Pool of names for text fields in --random mode.
_RANDOM_NAMES = ["Ann Lee", "Bo Chen", "Carla Diaz", "Dev Patel", "Emi Sato"]

# Answers most fields reject, sent now and then in --random mode.
_INVALID_ANSWERS = ["", "not-a-number", "32/13/2024", "-5"]


# ---------------------------------------------------------------------------
# Mock answer generation
# ---------------------------------------------------------------------------


def generate_answer(field, randomise: bool) -> str:
    """Produce a valid chat answer for ``field``."""
    if isinstance(field, TextField):
        name = random.choice(_RANDOM_NAMES) if randomise else _RANDOM_NAMES[0]
        if field.is_email:
            return name.split()[0].lower() + "@example.com"
        return name
    if isinstance(field, NumberField):
        low = int(field.min) if field.min is not None else 0
        high = int(field.max) if field.max is not None else low + 10
        return str(random.randint(low, high) if randomise else low)
    if isinstance(field, DateField):
        day = random.randint(1, 28) if randomise else 1
        return f"2024-05-{day:02d}"
    if isinstance(field, ChoiceField):
        if randomise:
            # Either the label or the 1-based index
            n = random.randint(1, len(field.options))
            return random.choice([str(n), field.options[n - 1]])
        return field.options[0]
    raise ValueError(f"No text answer for field kind {field.kind}")


def _print_step(step, verbose: bool) -> None:
    print(f"--- {step.type.upper()} ---")
    print(step.message)
    if isinstance(step, (AskStep, ReviewStep)):
        print(f"[progress {step.progress.done}/{step.progress.total}]")
    if verbose:
        print(json.dumps(step.model_dump(mode="json", exclude={"message"}), indent=2, ensure_ascii=False))
    print()


# ---------------------------------------------------------------------------
# Simulation loop
# ---------------------------------------------------------------------------


async def run_simulation(form_id: str, verbose: bool, quiet: bool, randomise: bool) -> DoneStep:
    store = FormStore()
    store.load()
    form = store.get(form_id)

    phrasing = RandomPhrasing() if randomise else FixedPhrasing()
    engine = ChatEngine(store, phrasing=phrasing)
    engine._repo = MockRepository()
    db = AsyncMock()

    session_id = uuid.uuid4().hex
    step = await engine.start(db, form_id=form_id, session_id=session_id)

    # Each record needs one turn per field; allow detours for invalid/back turns
    max_turns = form.fields_per_record * form.target_record_count * 4 + 4
    for _ in range(max_turns):
        if not quiet:
            _print_step(step, verbose)

        if isinstance(step, DoneStep):
            return step
        if isinstance(step, ReviewStep):
            step = await engine.submit(db, form_id=form_id, session_id=session_id)
            continue

        field = next(f for f in form.fields if f.id == step.field_id)
        if isinstance(field, FileField):
            metadata = UploadMetadata(
                file_id=uuid.uuid4().hex,
                original_name="document.pdf",
                mime="application/pdf",
                size_bytes=random.randint(1_000, 100_000) if randomise else 1_000,
            )
            step = await engine.upload_ack(
                db, form_id=form_id, session_id=session_id,
                field_id=field.id, metadata=metadata,
            )
            continue

        roll = random.random() if randomise else 1.0
        if roll < 0.1:
            text = random.choice(_INVALID_ANSWERS)
        elif roll < 0.15:
            text = "back"
        else:
            text = generate_answer(field, randomise)
        if not quiet:
            print(f">>> {text!r}")
        step = await engine.handle_turn(
            db, TurnRequest(form_id=form_id, session_id=session_id, command=text),
        )

    raise RuntimeError(f"Simulation did not finish within {max_turns} turns")


def list_forms() -> None:
    """Print all available forms and exit."""
    store = FormStore()
    store.load()
    print("Available forms:")
    print()
    for i, form in enumerate(store.list_forms(), 1):
        print(f"  {i:2d}. {form.id:<20s} ({form.target_record_count} x {form.fields_per_record} fields)")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simulate a form2chat conversation end-to-end with a mocked DB.",
    )
    parser.add_argument(
        "-f", "--form",
        default=_DEFAULT_FORM,
        help="Form id to simulate (default: references)",
    )
    parser.add_argument(
        "--list-forms",
        action="store_true",
        help="List all available forms and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Include the structured step payload in the output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all print output (exit code still reflects success/failure)",
    )
    parser.add_argument(
        "--random",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Randomise answers and detours (default: on). Use --no-random for deterministic mode.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s [%(name)s] %(message)s")

    if args.list_forms:
        list_forms()
        sys.exit(0)

    asyncio.run(run_simulation(args.form, args.verbose, args.quiet, args.random))


if __name__ == "__main__":
    main()
