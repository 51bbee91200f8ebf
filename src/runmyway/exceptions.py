"""Error taxonomy for route generation."""

from __future__ import annotations


class RunMyWayError(Exception):
    """Base class for every error raised by the generation engine."""


class InvalidPointError(RunMyWayError, ValueError):
    """Coordinates are malformed (NaN, infinite or out of WGS84 range)."""


class InsufficientCandidatesError(RunMyWayError):
    """Too few candidate waypoints to build a meaningful route."""


class NoViableVariantError(RunMyWayError):
    """POIs were requested but none scored above the acceptance floor."""


class RoutingError(RunMyWayError):
    """A single routing engine call failed."""


class RoutingUnavailableError(RunMyWayError):
    """Every attempt failed at the transport level; no route was produced."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class SearchError(RunMyWayError):
    """A place-search query failed."""


class GeocodingError(RunMyWayError, ValueError):
    """An address could not be resolved to coordinates."""


class GenerationCancelled(RunMyWayError):
    """The caller cancelled the generation request."""
