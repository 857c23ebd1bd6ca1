"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100

# Password input bounds (hashing parameters live in the auth backend)
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 16
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
MIN_BLACKLIST_TTL_SECONDS = 1

# Coordination store key prefixes
REFRESH_TOKEN_KEY_PREFIX = "refresh"
BLACKLIST_KEY_PREFIX = "blacklist"

# Rate limiting
RATE_LIMIT_MEMBER_RANDOM_BYTES = 4
MILLISECONDS_PER_SECOND = 1000

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
