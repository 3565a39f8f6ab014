"""
Remote Authority Package

Abstract interface plus the Apps Script HTTP implementation.
"""

from tripledger.services.remote.interface import (
    RemoteAuthorityInterface,
    RemoteError,
    RemoteUnavailableError,
    SnapshotRejectedError,
)
from tripledger.services.remote.apps_script import AppsScriptClient

__all__ = [
    "AppsScriptClient",
    "RemoteAuthorityInterface",
    "RemoteError",
    "RemoteUnavailableError",
    "SnapshotRejectedError",
]
