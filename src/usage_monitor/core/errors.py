# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Error taxonomy for usage acquisition.

Every acquisition failure is local to one account and one attempt. The
scheduler treats all of them the same way (keep last data, back off,
retry), so the classes mostly exist for logging and diagnostics.
"""

from typing import Optional


class AcquisitionError(Exception):
    """Base class for a failed acquisition attempt."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SpawnError(AcquisitionError):
    """The CLI could not be started (missing, not executable, no PTY)."""

    def __init__(self, message: str, pty_exhausted: bool = False):
        super().__init__(message)
        self.pty_exhausted = pty_exhausted


class AcquisitionTimeoutError(AcquisitionError):
    """The attempt ran out of time without a usable result."""

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase


class ProtocolDriftError(AcquisitionTimeoutError):
    """No recognised prompt led to the main prompt before the deadline."""


class ProcessExitError(AcquisitionError):
    """The CLI exited before a usable result was seen."""

    def __init__(
        self,
        message: str,
        exit_status: Optional[int] = None,
        signal_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.exit_status = exit_status
        self.signal_status = signal_status


class CredentialsNotFoundError(AcquisitionError):
    """No OAuth access token could be found for the account."""


class UsageEndpointError(AcquisitionError):
    """The usage HTTP endpoint failed or returned something unexpected."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
