"""
Domain exceptions raised by the service layer.

Route handlers do not catch these; exception handlers registered in
``pv_analytics.api.main`` translate each kind into an HTTP status.

CHANGELOG:
- 2026-10-13: Add ConflictError and InvalidReferenceError for registry CRUD (STORY-106)
- 2026-10-12: Initial creation (STORY-103)

TODO:
- None
"""


class AnalyticsError(Exception):
    """Base class for all service-layer errors."""


class NotFoundError(AnalyticsError):
    """A referenced plant or inverter does not exist.

    Attributes:
        entity_type: ``"inverter"`` or ``"plant"``.
        entity_id: The id that was looked up.
    """

    def __init__(self, entity_type: str, entity_id: int) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f'{entity_type.capitalize()} with ID "{entity_id}" not found.')


class InvalidRangeError(AnalyticsError):
    """A date range bound is missing, unparseable, or start is after end."""


class InvalidReferenceError(AnalyticsError):
    """A write references another entity that does not exist."""


class ConflictError(AnalyticsError):
    """A write would violate a uniqueness constraint."""


class StoreError(AnalyticsError):
    """The reading store or entity directory failed to answer."""
