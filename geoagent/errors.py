"""Exception types raised by GeoAgent."""

from __future__ import annotations


class GeoAgentError(Exception):
    """Base class for all GeoAgent errors."""


class ConfigError(GeoAgentError):
    """Settings file or environment holds an unusable value."""


class ToolError(GeoAgentError):
    """A tool was called with arguments it cannot work with."""


class BriefParseError(GeoAgentError):
    """The long-form model did not return a parseable JSON brief."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class AgentRunError(GeoAgentError):
    """A run ended without producing a content brief."""
