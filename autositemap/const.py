"""Constants for the autositemap package.

Defines the logging domain, the package version and the defaults shared by
the reconciliation modules.
"""

# Domain used as the ``domain`` field of every structured log record
DOMAIN: str = "autositemap"

# Public package version (kept in sync with pyproject.toml)
INTEGRATION_VERSION: str = "0.1.0"

# Prefix of every generated index entry name
DEFAULT_NAME_PREFIX: str = "sm-"

# Number of hex characters of the content fingerprint
FINGERPRINT_LENGTH: int = 6

# Quiet window before a batch of notifications is reconciled (seconds)
DEFAULT_DEBOUNCE_DELAY: float = 1.0

# Page size used when clearing old messages from an index entry
MESSAGE_PAGE_SIZE: int = 100
