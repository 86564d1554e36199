"""Exceptions raised across the ingestion pipeline."""


class JobBoardError(Exception):
    """Base class for all project errors."""


class FetchError(JobBoardError):
    """Transport failure or non-2xx response from a vendor API."""


class SourceParsingError(JobBoardError):
    """Vendor response body did not match any accepted shape."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class VendorError(JobBoardError):
    """Vendor returned an error envelope instead of data."""


class EnrichmentError(JobBoardError):
    """Company branding lookup failed."""


class PersistenceError(JobBoardError):
    """Saving a batch failed; the transaction was rolled back.

    `saved` is the number of records upserted before the failure. None of
    them were committed.
    """

    def __init__(self, message: str, saved: int = 0) -> None:
        super().__init__(message)
        self.saved = saved


class SaveCancelled(PersistenceError):
    """Cancellation was requested while a batch was being saved."""


class UnknownSourceError(JobBoardError, KeyError):
    """Source name is not one of the known adapters."""
