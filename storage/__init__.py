"""
Storage Module
Hand-off files between pipeline stages
"""
from .result_log import ResultLog, ResultIndex
from .run_ids import decode_run_ids, encode_run_ids, read_run_ids, write_run_ids
from .error_ledger import ErrorLedger

__all__ = [
    # Result log
    "ResultLog",
    "ResultIndex",
    # Run-ID lists
    "decode_run_ids",
    "encode_run_ids",
    "read_run_ids",
    "write_run_ids",
    # Error ledger
    "ErrorLedger",
]
