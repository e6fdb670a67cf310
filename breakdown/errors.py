"""
Error Taxonomy

Exceptions raised by the breakdown pipeline. Every error carries a short,
human-readable message that is safe to return to a client; stack detail is
only ever logged server-side.
"""


class BreakdownError(Exception):
    """Base class for all breakdown pipeline errors."""

    default_message = "Breakdown processing failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InputError(BreakdownError):
    """The client supplied missing or malformed input."""

    default_message = "Invalid request"


class ConfigError(BreakdownError):
    """The server is missing configuration it needs to run."""

    default_message = "Server is not configured"


class ExtractionError(BreakdownError):
    """Text extraction failed for a document."""

    default_message = "Failed to extract text"


class RenderError(BreakdownError):
    """A single PDF page could not be rasterized."""

    default_message = "Failed to render page"


class SummarizationCallError(BreakdownError):
    """The external synthesis call failed."""

    default_message = "Failed to generate breakdown"
