"""
Exceptions raised by RouteMap
"""

from typing import Optional


class RouteMapError(Exception):
    """Base class for RouteMap errors"""


class InvalidTargetError(RouteMapError, ValueError):
    """Target string is empty or contains disallowed characters"""


class ExecutionError(RouteMapError):
    """The trace utility could not run, failed, or timed out"""

    def __init__(self, message: str, command: Optional[list[str]] = None,
                 returncode: Optional[int] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class PipelineError(RouteMapError):
    """A trace request could not be completed"""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target


class PublicIPError(RouteMapError):
    """Public IP detection failed"""
