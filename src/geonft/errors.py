"""
Error taxonomy for GeoNFT.

Producer-side failures (decoding, signatures, duplicate records) are
reported back to whoever submitted the request. Engine-side failures
are operator-visible through logs, except persistence failures, which
always propagate.
"""


class GeonftError(Exception):
    """Base class for every GeoNFT failure."""


class DecodeError(GeonftError):
    """Raised when a key, signature, or image encoding is malformed."""


class SignatureInvalid(GeonftError):
    """Raised when a signature does not verify against its canonical message."""


class TreasureExists(GeonftError):
    """Raised when a treasure has already been planted."""


class TreasureNotFound(GeonftError):
    """Raised when a claim names a treasure that was never planted."""


class TreasureAlreadyClaimed(GeonftError):
    """Raised when a treasure already carries a claim record."""


class RecordError(GeonftError):
    """Raised when a stored plant or claim record cannot be read."""


class ExternalServiceError(GeonftError):
    """Raised when the ledger or content store rejects or fails a call."""


class PersistenceError(GeonftError):
    """Raised when a durable write fails or would regress sync status."""
