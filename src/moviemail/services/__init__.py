from .archive import ArchiveStore
from .notifier import ConsoleNotifier, EmailNotifier, Notifier
from .pipeline import FilterPipeline, QualityRules, TitleRules
from .run import RunService

__all__ = [
    "ArchiveStore",
    "ConsoleNotifier",
    "EmailNotifier",
    "FilterPipeline",
    "Notifier",
    "QualityRules",
    "RunService",
    "TitleRules",
]
