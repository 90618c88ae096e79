"""Exception types raised inside the discovery pipeline.

Only adapters and stages raise these; components catch them at the narrowest
scope that can recover (single venue, single source, single stage).
"""


class VenueScoutError(Exception):
    """Base class for all venuescout errors."""


class SourceError(VenueScoutError):
    """A single external source failed (network, quota, bad payload)."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class PlacesError(SourceError):
    """Raised when the place-search API returns a non-successful status."""

    def __init__(self, message: str):
        super().__init__("google_places", message)


class StageError(VenueScoutError):
    """A pipeline stage exhausted its retries."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class StageTimeoutError(StageError):
    """A pipeline stage attempt exceeded its timeout."""

    def __init__(self, stage: str, timeout: float):
        super().__init__(stage, f'Stage "{stage}" timed out after {timeout}s')
        self.timeout = timeout


class DiscoveryError(VenueScoutError):
    """Every enabled discovery source failed."""

    def __init__(self, errors: dict[str, str]):
        joined = "; ".join(f"{name}: {err}" for name, err in errors.items())
        super().__init__(f"All discovery sources failed: {joined}")
        self.errors = errors
