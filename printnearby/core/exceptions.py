"""Error taxonomy for the nearby search core.

The HTTP layer maps each class to a status code; the core itself never
retries or recovers.
"""


class NearbySearchError(Exception):
    """Base exception for all search errors."""

    error_code = "NEARBY_SEARCH_ERROR"


class InvalidArgumentError(NearbySearchError):
    """Malformed radius, coordinate or ZIP code input."""

    error_code = "INVALID_ARGUMENT"


class ZipNotFoundError(NearbySearchError):
    """A well-formed ZIP code that is absent from the gazetteer."""

    error_code = "ZIP_NOT_FOUND"

    def __init__(self, zip_code: str):
        self.zip_code = zip_code
        super().__init__(f"ZIP code {zip_code} not found")


class DependencyFailureError(NearbySearchError):
    """The external printer record store failed."""

    error_code = "DEPENDENCY_FAILURE"


class FatalStartupError(NearbySearchError):
    """The ZIP dataset could not be loaded; the process must not serve."""

    error_code = "FATAL_STARTUP"

    def __init__(self, path: str, detail: str):
        self.path = path
        super().__init__(f"Cannot load ZIP dataset at {path}: {detail}")
