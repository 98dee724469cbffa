from app.client.ingest_client import (
    IngestClient,
    IngestClientError,
    IngestInvalidPayloadError,
    IngestRejectedError,
    IngestServerError,
    IngestUnavailableError,
)

__all__ = [
    "IngestClient",
    "IngestClientError",
    "IngestInvalidPayloadError",
    "IngestRejectedError",
    "IngestServerError",
    "IngestUnavailableError",
]
