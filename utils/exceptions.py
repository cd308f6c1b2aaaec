"""
Custom Exceptions
Error taxonomy for the run completion pipeline
"""
from typing import Optional


class RunCompleterError(Exception):
    """Base exception for the run completion pipeline"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RunCompleterError):
    """Missing or invalid configuration; aborts before any network call"""
    pass


class RemoteCallError(RunCompleterError):
    """A call to the test-management service did not succeed"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        run_id: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, kwargs)
        self.status_code = status_code
        self.run_id = run_id


class TransientRemoteError(RemoteCallError):
    """Transport failure or throttling/5xx response, eligible for retry"""
    pass


class TerminalRemoteError(RemoteCallError):
    """Non-retryable response (4xx other than 429, or a false status envelope)"""
    pass


class MalformedResponseError(TerminalRemoteError):
    """Response body was not the JSON shape the service documents"""
    pass


class LocalDataError(RunCompleterError):
    """Local hand-off data could not be used"""
    pass


class ResultLogError(LocalDataError):
    """Result log could not be read or appended"""
    pass


class RunIdCodecError(LocalDataError):
    """Run-ID list text is not a comma-separated list of decimal integers"""
    pass


class LedgerError(RunCompleterError):
    """Error ledger could not be written"""
    pass


class RetriesExhaustedError(TerminalRemoteError):
    """Every allowed attempt hit a transient failure"""

    def __init__(self, message: str, last_error: Optional[RemoteCallError] = None, **kwargs):
        status_code = last_error.status_code if last_error is not None else None
        super().__init__(message, status_code=status_code, **kwargs)
        self.last_error = last_error
