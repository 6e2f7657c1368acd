"""Conversation constants shared across the SDK.

These values are referenced by the engine, the phrasing layer and the form
store.  The form directory can be overridden via environment variable so
deployments can ship their own form definitions without code changes.
"""

import os

# Directory holding the ``*.yaml`` / ``*.yml`` / ``*.json`` form definitions.
# Overridable via FORM2CHAT_FORM_DIR (None → ``forms/`` at the repo root).
DEFAULT_FORM_DIR = os.getenv("FORM2CHAT_FORM_DIR") or None

# File extensions the form store picks up, in lookup order.
FORM_FILE_SUFFIXES: tuple[str, ...] = (".yaml", ".yml", ".json")

# Free-text commands recognised by the turn protocol.  Matching is done on
# the trimmed, lowercased message text.
COMMAND_START = "start"
COMMAND_BACK = "back"
COMMAND_RESTART = "restart"
COMMAND_SUBMIT = "submit"

# Draft keys that hold the respondent's name, checked in order when
# personalising acknowledgements.
NAME_FIELD_IDS: tuple[str, ...] = ("name", "full_name", "first_name")

# Short acknowledgements prefixed to prompts while data is being collected.
# Never used for review or done responses.
ACKNOWLEDGEMENTS: tuple[str, ...] = (
    "Got it.",
    "Perfect, let's keep going!",
    "Nice.",
    "Awesome, thanks.",
)
