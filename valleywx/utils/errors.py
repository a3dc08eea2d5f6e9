"""
Domain exceptions.

Storage helpers raise these; routers translate them into HTTP errors.
"""


class ValleyWxError(Exception):
    """Base class for service errors."""


class NoPrimaryStationError(ValleyWxError):
    """No active station is flagged primary."""


class StationNotFoundError(ValleyWxError):
    """Referenced station code does not exist."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Station '{code}' not found")
