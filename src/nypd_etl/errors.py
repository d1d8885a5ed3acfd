from __future__ import annotations


class EtlError(RuntimeError):
    """Base error for the roster ETL."""


class CredentialError(EtlError):
    """Raised when the session token cannot be obtained. Fatal for the run."""


class OutputWriteError(EtlError):
    """Raised when the result document cannot be written. Fatal for the run."""


class DetailLookupError(EtlError):
    """Raised when a detail lookup returns an unexpected number of entries."""
