class PlaybackError(Exception):
    """Base error for track ingestion, data sources and playback."""

    error_code = "PLAYBACK_ERROR"

    def __init__(self, message: str, *, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code or self.error_code
        self.message = message


class IngestError(PlaybackError):
    error_code = "INGEST_ERROR"


class EmptyDatasetError(IngestError):
    """No observation survived validation."""

    error_code = "EMPTY_DATASET"

    def __init__(self, message: str = "no valid observations in dataset", *, skipped: int = 0):
        super().__init__(message)
        self.skipped = skipped


class MalformedRecordError(IngestError):
    """A single feature record failed validation.

    Raised by the strict validator only; ``TrackStore.ingest`` absorbs these.
    """

    error_code = "MALFORMED_RECORD"

    def __init__(self, reason: str, *, seq: int | None = None):
        where = f" (record {seq})" if seq is not None else ""
        super().__init__(f"malformed record{where}: {reason}")
        self.reason = reason
        self.seq = seq


class UnknownEntityError(PlaybackError, KeyError):
    error_code = "UNKNOWN_ENTITY"

    def __init__(self, entity_id: str):
        super().__init__(f"unknown entity: {entity_id!r}")
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.message


class DataSourceError(PlaybackError):
    error_code = "DATA_SOURCE_ERROR"

    def __init__(self, message: str, *, resource_id: str | None = None):
        super().__init__(message)
        self.resource_id = resource_id


class NetworkError(DataSourceError):
    error_code = "NETWORK_ERROR"


class ParseError(DataSourceError):
    error_code = "PARSE_ERROR"


class UnknownDatasetError(PlaybackError, KeyError):
    error_code = "UNKNOWN_DATASET"

    def __init__(self, resource_id: str):
        super().__init__(f"unknown dataset: {resource_id!r}")
        self.resource_id = resource_id

    def __str__(self) -> str:
        return self.message
