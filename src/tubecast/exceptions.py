"""Exception hierarchy for the ingestion pipeline."""


class TubecastError(Exception):
    """Base class for all tubecast errors."""

    pass


class Cancelled(TubecastError):
    """Raised when processing is stopped by the cancellation event."""

    pass


class PipelineError(TubecastError):
    """Raised when a processing cycle fails and the scheduler must stop."""

    pass


class StoreError(TubecastError):
    """Raised when the metadata store fails a lookup or write."""

    pass


class PartialRemoveError(StoreError):
    """Raised when old metadata was trimmed but part of the removal failed.

    The files of every trimmed entry are still attached and must be deleted.
    """

    def __init__(self, message: str, files: list[str] | None = None) -> None:
        super().__init__(message)
        self.files = files or []


class FeedError(TubecastError):
    """Raised when an RSS feed cannot be rendered."""

    pass


class DownloadError(TubecastError):
    """Raised by downloaders when audio for an entry cannot be fetched."""

    pass
