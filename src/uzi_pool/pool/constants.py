"""Shared constants for the pool module."""

# Seconds between puzzle fetches from the node
DEFAULT_POLL_INTERVAL = 5.0

# Factor applied to the node's work estimate before advertising a puzzle
DEFAULT_DIFFICULTY_SCALE = 0.1

# Maximum size of a miner request body (bytes)
MAX_REQUEST_BODY_SIZE = 64 * 1024

# Maximum length of a node response kept in error messages
MAX_ERROR_BODY_LENGTH = 200

# Maximum length for background task exception messages
MAX_BACKGROUND_ERROR_LENGTH = 500

# Timeout for stopping background tasks during shutdown (seconds)
SHUTDOWN_TIMEOUT = 5.0
