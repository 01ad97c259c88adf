"""Rebuild error and warning codes."""
from typing import Optional

# Fatal: the rebuild (or hand-off) does not happen
TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
NO_DIVISIONS_CONFIGURED = "NO_DIVISIONS_CONFIGURED"
REBUILD_IN_PROGRESS = "REBUILD_IN_PROGRESS"
UNKNOWN_REBUILD = "UNKNOWN_REBUILD"
NO_RAINY_TEMPLATE = "NO_RAINY_TEMPLATE"
NO_REGULAR_TEMPLATE = "NO_REGULAR_TEMPLATE"

# Non-fatal: collected as warnings, the rebuild still succeeds
NO_WALL_FOR_DIVISION = "NO_WALL_FOR_DIVISION"
TRANSITION_PAST_WALL = "TRANSITION_PAST_WALL"
UNMATCHED_REMAP_SLOT = "UNMATCHED_REMAP_SLOT"
ACTIVITY_DROPPED = "ACTIVITY_DROPPED"


class RebuildError(Exception):
    """Base for conditions that stop a rebuild entirely."""

    code = "REBUILD_FAILED"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TemplateNotFound(RebuildError):
    code = TEMPLATE_NOT_FOUND


class NoDivisionsConfigured(RebuildError):
    code = NO_DIVISIONS_CONFIGURED


class RebuildInProgress(RebuildError):
    code = REBUILD_IN_PROGRESS


class UnknownRebuild(RebuildError):
    code = UNKNOWN_REBUILD


class NoRainyTemplate(RebuildError):
    code = NO_RAINY_TEMPLATE


class NoRegularTemplate(RebuildError):
    code = NO_REGULAR_TEMPLATE


class RebuildWarning:
    """Non-fatal condition recorded during a rebuild or remap"""

    def __init__(self, code: str, message: str, division: Optional[str] = None):
        self.code = code
        self.message = message
        self.division = division

    def to_dict(self):
        return {"code": self.code, "message": self.message, "division": self.division}

    def __repr__(self):
        return f"RebuildWarning({self.code!r}, {self.message!r}, division={self.division!r})"
