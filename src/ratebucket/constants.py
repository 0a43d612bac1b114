"""Shared constants for ratebucket."""

# Requests
DEFAULT_RESOURCE = "global"
DEFAULT_TOKENS = 1

# Token counts are rounded to this many decimals after every update
PRECISION_DIGITS = 6

# Refill interval lengths (seconds)
SECOND = 1
MINUTE = 60
HOUR = 3600

INTERVALS = {
    "second": SECOND,
    "minute": MINUTE,
    "hour": HOUR,
}

# Storage
KEY_SEPARATOR = ":"  # composite id is "<resource>:<key>"
STORE_VERSION = 1
STORE_FILENAME = "buckets.json"
