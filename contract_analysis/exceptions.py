# SPDX-License-Identifier: AGPL-3.0-only

"""
Exception types raised by the contract analysis pipeline.

Client input problems are handled at the HTTP layer and never reach these
classes; everything here is a downstream failure that the endpoint turns into
a generic 500 response.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for contract analysis failures."""


class ConfigurationError(AnalysisError):
    """Raised when the service is missing required configuration (API key, style)."""


class AnalysisServiceError(AnalysisError):
    """Raised when the language-model service fails or returns nothing usable."""


class JobFailedError(AnalysisServiceError):
    """Raised when a remote job reaches the failed state."""

    def __init__(self, message: Optional[str] = None):
        self.service_message = message or "unknown error"
        super().__init__(f"Analysis job failed: {self.service_message}")


class JobTimeoutError(AnalysisServiceError):
    """Raised when a remote job does not finish within the polling bounds."""


class JobCancelledError(AnalysisServiceError):
    """Raised when polling is cancelled before the job finished."""
