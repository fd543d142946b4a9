"""
Pipeline error taxonomy.

Transient errors are retried; parse and configuration errors end a run on
the first failure.
"""


class PipelineError(Exception):
    """Base class for failures a pipeline run reports as a message."""
    pass


class TransientFetchError(PipelineError):
    """Network or timeout failure that may succeed on a later attempt"""
    pass


class SourceParseError(PipelineError):
    """Fetched data could not be parsed"""
    pass


class SourceConfigurationError(PipelineError):
    """Source descriptor is malformed or points at nothing"""
    pass


class RetryExhaustedError(PipelineError):
    """Raised when every allowed attempt failed; carries the last error's message."""

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(str(last_error) or type(last_error).__name__)
        self.last_error = last_error
        self.attempts = attempts
