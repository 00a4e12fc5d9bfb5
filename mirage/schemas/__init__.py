from mirage.schemas.payload_contracts import (
    ScoreUploadEnvelope,
    ScoreUploadResponse,
    UploadMeta,
)

__all__ = [
    "UploadMeta",
    "ScoreUploadEnvelope",
    "ScoreUploadResponse",
]
