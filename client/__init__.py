"""
Client Module
"""
from .qase_client import DEFAULT_BASE_URL, QaseClient

__all__ = [
    "DEFAULT_BASE_URL",
    "QaseClient",
]
