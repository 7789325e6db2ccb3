"""Utility functions for pyfaas."""

from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for platform operations
# =============================================================================

# Seconds between two state checks while watching a deployment
DEFAULT_POLL_INTERVAL: float = 3.0

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Manifest version of a function body that was never deployed
NEVER_DEPLOYED_VERSION: int = -1

# Event label used in config.json for functions without an event
NO_EVENT: str = "No Event"

# Environment entry written for functions without custom variables
PLACEHOLDER_ENV_KEY: str = "key"
PLACEHOLDER_ENV_VALUE: str = "value"


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO format timestamp from the platform.

    Args:
        timestamp_str: ISO format timestamp string (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        datetime object in local timezone or None if parsing fails
    """
    if not timestamp_str:
        return None

    try:
        # The 'Z' suffix indicates UTC time
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"

        dt = datetime.fromisoformat(timestamp_str)
        if dt.tzinfo is not None:
            # Convert to local naive datetime
            return datetime.fromtimestamp(dt.timestamp())
        return dt
    except (ValueError, AttributeError):
        return None


def format_date(timestamp_str: Optional[str]) -> str:
    """Format a platform timestamp for prompts and summaries.

    Args:
        timestamp_str: ISO format timestamp string

    Returns:
        Date like "15.01.2025 10:30:00", or "-" when unavailable
    """
    dt = parse_iso_timestamp(timestamp_str)
    if dt is None:
        return "-"
    return dt.strftime("%d.%m.%Y %H:%M:%S")


# =============================================================================
# Environment variable utilities
# =============================================================================


def strip_placeholder_env(environment: Optional[dict[str, str]]) -> dict[str, str]:
    """Remove the placeholder entry from an environment mapping.

    Args:
        environment: Environment variables (may be None)

    Returns:
        Copy of the mapping without the ``{"key": "value"}`` placeholder

    Examples:
        >>> strip_placeholder_env({"key": "value"})
        {}
        >>> strip_placeholder_env({"key": "other", "A": "1"})
        {'key': 'other', 'A': '1'}
    """
    if not environment:
        return {}
    return {
        name: value
        for name, value in environment.items()
        if not (name == PLACEHOLDER_ENV_KEY and value == PLACEHOLDER_ENV_VALUE)
    }
