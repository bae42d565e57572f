"""Setup outcome tracking: ledger, engines and per-tick orchestrator."""

from .analytics import TrackerStats, breakdown, records_frame, summarize  # noqa: F401
from .models import (  # noqa: F401
    LedgerDocument,
    Outcome,
    Side,
    TrackedSetupRecord,
)
from .storage import (  # noqa: F401
    JsonFileStorage,
    MemoryStorage,
    StorageError,
    StorageFullError,
)
from .store import LedgerStore  # noqa: F401
from .tracker import SetupTracker  # noqa: F401
