"""
Utils Module
Logging and exception helpers
"""
from .logger import console, setup_logger, get_logger
from .exceptions import (
    RunCompleterError,
    ConfigurationError,
    RemoteCallError,
    TransientRemoteError,
    TerminalRemoteError,
    MalformedResponseError,
    RetriesExhaustedError,
    LocalDataError,
    ResultLogError,
    RunIdCodecError,
    LedgerError,
)

__all__ = [
    "console",
    "setup_logger",
    "get_logger",
    "RunCompleterError",
    "ConfigurationError",
    "RemoteCallError",
    "TransientRemoteError",
    "TerminalRemoteError",
    "MalformedResponseError",
    "RetriesExhaustedError",
    "LocalDataError",
    "ResultLogError",
    "RunIdCodecError",
    "LedgerError",
]
