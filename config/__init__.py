"""
Configuration Management Module
"""
from .settings import (
    Settings,
    QaseSettings,
    ExecutorSettings,
    RetrySettings,
    CompletionRetrySettings,
    FetchSettings,
    PathSettings,
    get_settings,
    get_qase_settings,
    get_executor_settings,
    get_path_settings,
)

__all__ = [
    "Settings",
    "QaseSettings",
    "ExecutorSettings",
    "RetrySettings",
    "CompletionRetrySettings",
    "FetchSettings",
    "PathSettings",
    "get_settings",
    "get_qase_settings",
    "get_executor_settings",
    "get_path_settings",
]
