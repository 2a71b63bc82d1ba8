"""Runners for the echo demo function."""

from invokeloop.apps.echo.runners.echo import Echo

__all__ = ["Echo"]
