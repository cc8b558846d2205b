"""
Planning Errors
===============
Exception types raised by the planning engine.

All of them describe a problem with the caller inputs of a DFU.
"""


class PlanningError(Exception):
    """Base class for every error raised while planning a DFU."""

    def __init__(self, message, entity_id=None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id

    def __str__(self):
        if self.entity_id is not None:
            return f"[{self.entity_id}] {self.message}"
        return self.message


class ValidationError(PlanningError):
    """Malformed, out-of-order or duplicate periods, or negative quantities."""


class InvalidSeriesError(PlanningError):
    """The period series of a DFU is empty."""


class InvalidHorizonError(PlanningError):
    """Horizon grid does not match the periods or holds unknown statuses."""


class ConfigurationError(PlanningError):
    """Coverage, MOQ or horizon parameters required by the mode are missing."""
