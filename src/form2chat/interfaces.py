"""Abstract interfaces for pluggable, non-deterministic engine content.

The state machine itself is deterministic: given the same session row and
turn it always persists the same state and returns the same structural
response.  The only free-form content is the short acknowledgement that
prefixes prompts while data is being collected; it lives behind
:class:`Phrasing` so tests can swap in a fixed implementation and treat the
greeting text as opaque.

Typical integration::

    engine = ChatEngine(forms, phrasing=RandomPhrasing())
    # tests
    engine = ChatEngine(forms, phrasing=FixedPhrasing("OK."))
"""

from abc import ABC, abstractmethod


class Phrasing(ABC):
    """Interface for the acknowledgement phrase prefixed to ASK prompts."""

    @abstractmethod
    def acknowledgement(self, name: str | None = None) -> str:
        """Return a short acknowledgement for a successful answer.

        Parameters
        ----------
        name:
            First token of the respondent's name when the record being
            filled already holds one, otherwise ``None``.

        Returns
        -------
        str
            A single line of text, e.g. ``"Nice. Ann."``.
        """
        ...
