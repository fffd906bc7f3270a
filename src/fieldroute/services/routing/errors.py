"""Input validation errors raised before any optimization work starts."""

from __future__ import annotations


class RouteInputError(ValueError):
    code = "InvalidInput"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NoStartLocationError(RouteInputError):
    code = "NoStartLocation"


class NoDestinationsError(RouteInputError):
    code = "NoDestinations"


class TooManyDestinationsError(RouteInputError):
    code = "TooManyDestinations"


class MissingAddressError(RouteInputError):
    code = "MissingAddress"
