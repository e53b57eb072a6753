"""
Error taxonomy for the dashboard core.

Every error carries a stable ``reason`` string; EditSession turns it into an
IntentResult and the HTTP layer into a status code.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for all dashboard errors."""

    reason = "dashboard-error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(DashboardError):
    """Missing view anchors or invalid inputs; fatal to initialization."""

    reason = "configuration-error"


class NotFound(DashboardError):
    """A widget or template that was addressed does not exist."""

    reason = "not-found"


class NotEditing(DashboardError):
    """A widget-level intent arrived while the session is not in edit mode."""

    reason = "not-editing"


class EditInProgress(DashboardError):
    """A template-level intent that requires view mode arrived while editing."""

    reason = "edit-in-progress"


# ── Layout ──────────────────────────────────────────

class LayoutError(DashboardError):
    reason = "layout-error"


class CapacityExceeded(LayoutError):
    reason = "capacity-exceeded"


class RowFull(LayoutError):
    reason = "row-full"


class DuplicateWidget(LayoutError):
    reason = "duplicate-widget"


class InvalidSlot(LayoutError):
    reason = "invalid-slot"


class SectionMismatch(LayoutError):
    reason = "section-mismatch"


# ── Templates ───────────────────────────────────────

class TemplateError(DashboardError):
    reason = "template-error"


class DuplicateName(TemplateError):
    reason = "duplicate-name"


class InvalidName(TemplateError):
    reason = "invalid-name"


class ActiveTemplateProtected(TemplateError):
    reason = "active-template-protected"


# ── I/O and rendering ───────────────────────────────

class PersistenceFailure(DashboardError):
    """The persistent store raised during a read or write."""

    reason = "persistence-failure"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class RenderFailure(DashboardError):
    """A single widget's render capability raised."""

    reason = "render-failure"

    def __init__(self, widget_id: str, cause: Optional[BaseException] = None):
        self.widget_id = widget_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Error rendering widget {widget_id}{detail}")
