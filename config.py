"""
===============================================================================
  SETUP OUTCOME TRACKER — Master Configuration
===============================================================================
  Every tunable parameter lives here.  Nothing is hard-coded elsewhere.
  Values are loaded from .env where secrets are involved; everything else
  has a sensible default that can be overridden from the environment.
===============================================================================
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Load .env ────────────────────────────────────────────────────────────────
_ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(_ENV_PATH)

# ═════════════════════════════════════════════════════════════════════════════
#  PATHS
# ═════════════════════════════════════════════════════════════════════════════
BASE_DIR: Path = Path(__file__).parent

# ═════════════════════════════════════════════════════════════════════════════
#  TELEGRAM  (optional close notifications)
# ═════════════════════════════════════════════════════════════════════════════
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID: str = os.getenv("TELEGRAM_CHAT_ID", "")

# ═════════════════════════════════════════════════════════════════════════════
#  LEDGER STORE
# ═════════════════════════════════════════════════════════════════════════════
TRACKER_STORE_PATH: Path = Path(
    os.getenv("TRACKER_STORE_PATH", str(BASE_DIR / "data" / "setup_tracking_v1.json"))
)
TRACKER_SCHEMA_VERSION: int = 1

# Size cap: closed records beyond this are evicted, oldest-closed first.
# OPEN records are never evicted, so the ledger may exceed the cap.
TRACKER_MAX_ITEMS: int = int(os.getenv("TRACKER_MAX_ITEMS", "400"))

# Cap applied on the single evict-and-retry after a rejected write
TRACKER_RECOVERY_MAX_ITEMS: int = int(
    os.getenv("TRACKER_RECOVERY_MAX_ITEMS", str(TRACKER_MAX_ITEMS // 2))
)

# ═════════════════════════════════════════════════════════════════════════════
#  RECORD DERIVATION
# ═════════════════════════════════════════════════════════════════════════════
# Risk at or below this is treated as zero → candidate rejected
TRACKER_RISK_EPSILON: float = 1e-12

# Status label the upstream pipeline emits when a setup fires
TRIGGERED_STATUS: str = "TRIGGERED"

# ═════════════════════════════════════════════════════════════════════════════
#  LOGGING
# ═════════════════════════════════════════════════════════════════════════════
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR: Path = BASE_DIR / "logs"
