"""
Target validation
"""

import re

from .errors import InvalidTargetError


# No leading hyphen, so a target can never be read as an mtr option
TARGET_PATTERN = re.compile(r'^[a-zA-Z0-9_.:][a-zA-Z0-9_.:-]*$')


def validate_target(target: str) -> str:
    """
    Validate a trace target before it reaches the command line.

    Args:
        target: Hostname or IP address as supplied by the user

    Returns:
        The stripped target

    Raises:
        InvalidTargetError: If the target is empty or has disallowed characters
    """
    target = (target or '').strip()
    if not target or not TARGET_PATTERN.match(target):
        raise InvalidTargetError(
            "Target must contain only alphanumeric characters, "
            "dots, hyphens, colons, or underscores, and must not start with a hyphen"
        )
    return target
