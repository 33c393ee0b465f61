"""
services/exceptions.py – Structured custom exception hierarchy for dlc-catalog.

All service-level errors derive from DlcCatalogError so callers can catch
broadly or specifically depending on context.
"""


class DlcCatalogError(Exception):
    """Base class for all dlc-catalog exceptions."""


class ConfigError(DlcCatalogError):
    """Raised when the configuration file cannot be written."""


class MissingApiKeyError(ConfigError):
    """Raised when a remote catalogue fetch is needed but no API key is set."""

    def __init__(self) -> None:
        super().__init__(
            "Steam API key is not configured. Set it with `dlc-catalog set-key <KEY>`. "
            "You can get one from: https://steamcommunity.com/dev/apikey"
        )


class CatalogFetchError(DlcCatalogError):
    """Raised when the paginated catalogue download fails or returns garbage."""


class SnapshotFormatError(DlcCatalogError):
    """Raised when a catalogue payload is not of the expected JSON shape."""


class CatalogUnavailableError(DlcCatalogError):
    """Raised when neither the API nor the local snapshot yields a catalogue."""


class CatalogNotReadyError(DlcCatalogError):
    """Raised when the catalogue is queried before it has been initialised."""


class DownloadError(DlcCatalogError):
    """Raised when the tool archive download fails or is interrupted."""


class ExtractionError(DlcCatalogError):
    """Raised when archive extraction fails or produces unexpected output."""
