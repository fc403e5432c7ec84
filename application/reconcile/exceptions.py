"""Reconciliation job exceptions."""

from typing import Optional


class SweepSetupError(Exception):
    """A sweep could not start: the parent listing or the validity oracle failed.

    Raised before any parent is processed, so nothing has been written.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error # Original error
