"""
Project-wide defaults for structured generation.

None of these are contracts; every value can be overridden through
configuration.
"""  # noqa: D200, D212, D415

# ==============================================================================
# Upstream model
# ==============================================================================

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.7

# ==============================================================================
# Retry and rotation
# ==============================================================================

ATTEMPT_FLOOR = 3  # attempt budget is max(ATTEMPT_FLOOR, pool size)
QUOTA_RETRY_DELAY = 1.0  # seconds before rotating to the next credential
OVERLOAD_BASE_DELAY = 2.0  # seconds, multiplied by the attempt number
QUOTA_COOLDOWN = 60.0  # seconds a credential rests after a quota error

# HTTP status codes with an unambiguous meaning for rotation decisions
QUOTA_STATUS_CODES = frozenset({429})
OVERLOAD_STATUS_CODES = frozenset({500, 502, 503, 504})

# ==============================================================================
# Output budgeting
# ==============================================================================

BASE_OUTPUT_TOKENS = 2000  # prompt overhead and wrapping
TOKENS_PER_ITEM = 1000
MAX_OUTPUT_TOKENS = 65536  # hard ceiling accepted by the model
TRUNCATION_GROWTH = 1.5  # budget multiplier after a truncated response

# ==============================================================================
# Recovery
# ==============================================================================

MAX_RESEGMENT_CANDIDATES = 16
EXCERPT_RADIUS = 40

# ==============================================================================
# Credentials
# ==============================================================================

API_KEY_ENV = "GEMINI_API_KEY"
MAX_NUMBERED_KEYS = 10  # GEMINI_API_KEY_1 .. GEMINI_API_KEY_10
API_KEY_LIST_ENV = "GEMINI_API_KEYS"
