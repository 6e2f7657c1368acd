"""Message rendering for chat turns.

Provides ``PromptManager``, a Jinja2-based template engine that renders the
ASK / REVIEW / DONE messages returned by the engine.
"""

from form2chat.prompt.manager import PromptManager

__all__ = ["PromptManager"]
