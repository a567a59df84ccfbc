from .movie import (
    DEFAULT_PLACEHOLDER_PATTERNS,
    DEFAULT_SHORT_RUNTIME_MINUTES,
    ArchiveRecord,
    Classification,
    Director,
    FetchResult,
    NotifiableMovie,
    PipelineResult,
    RawMovie,
    Rejection,
    RejectionReason,
    RunSummary,
)

__all__ = [
    "ArchiveRecord",
    "Classification",
    "DEFAULT_PLACEHOLDER_PATTERNS",
    "DEFAULT_SHORT_RUNTIME_MINUTES",
    "Director",
    "FetchResult",
    "NotifiableMovie",
    "PipelineResult",
    "RawMovie",
    "Rejection",
    "RejectionReason",
    "RunSummary",
]
