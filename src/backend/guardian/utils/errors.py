"""
Error taxonomy shared by the detection services.

"Nothing found" is never an exception: extractors return None or a default.
Only input and upstream failures are raised, and they are caught at the
nearest orchestration boundary (one detector run, one message, one request).
"""


class GuardianError(Exception):
    """Base class for subscription detection failures."""


class MalformedInput(GuardianError):
    """Input could not be read (broken DOM, undecodable body, empty document)."""


class UpstreamUnavailable(GuardianError):
    """A collaborator (Gmail, Tesseract) failed; the caller should offer manual entry."""


class InvalidTransition(GuardianError):
    """A scan lifecycle event is not allowed in the current phase."""

    def __init__(self, phase, event):
        super().__init__(f"Cannot apply '{event}' while {getattr(phase, 'value', phase)}")
        self.phase = phase
        self.event = event
