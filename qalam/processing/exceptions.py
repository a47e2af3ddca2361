"""Processor errors."""


class ProcessingError(Exception):
    """Base class for errors that abort a whole processor run."""

    pass


class EventFetchError(ProcessingError):
    """The pending batch could not be read.

    The message is always ``failed_to_fetch_events`` so triggers can relay it
    verbatim; the underlying error is chained as ``__cause__``.
    """

    code = "failed_to_fetch_events"

    def __init__(self, message: str = code):
        super().__init__(message)
