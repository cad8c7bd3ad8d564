# =============================================================================
# TS Remote Client -- Logging
# =============================================================================

import logging

logger = logging.getLogger("ts_remote_client")
