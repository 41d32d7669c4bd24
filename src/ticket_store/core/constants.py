"""
Ticket Store Constants

Wire vocabulary shared by the ticket client and the stores. Label names and
registry titles are a compatibility contract with tickets already stored on
the platform and must not change.
"""

import re

# =============================================================================
# Ticketing Platform API
# =============================================================================

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
API_ACCEPT_HEADER = "application/vnd.github+json"
API_VERSION = "2022-11-28"
USER_AGENT = "ticket-store/1.0"

# Pagination limits for listing endpoints
PER_PAGE = 100
MAX_PAGES = 50

# Lock reason applied to collection tickets
LOCK_REASON = "off-topic"

# =============================================================================
# Label Vocabulary
# =============================================================================

USER_ID_LABEL_PREFIX = "user-id:"
DATA_VERSION_LABEL = "data-version:v1"
AUTOMATED_LABEL = "automated"


def user_id_label(user_id: int | str) -> str:
    """Build the authoritative owner label for a collection ticket."""
    return f"{USER_ID_LABEL_PREFIX}{user_id}"


# =============================================================================
# Registry Index Format
# =============================================================================

# One index entry per line: [key]=commentId
INDEX_ENTRY_PATTERN = re.compile(r"\[(\w+)\]=(\w+)", re.ASCII)

# Keys must survive a round trip through INDEX_ENTRY_PATTERN
INDEX_KEY_PATTERN = re.compile(r"^\w+$", re.ASCII)

# =============================================================================
# Record Identity
# =============================================================================

RECORD_ID_SUFFIX_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
RECORD_ID_SUFFIX_LENGTH = 9
