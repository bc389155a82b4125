class TrackingError(Exception):
    """Base for failures that map onto an HTTP status and an `{"error": ...}` body."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(TrackingError):
    status_code = 500


class Unauthorized(TrackingError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(TrackingError):
    status_code = 403


class NotFound(TrackingError):
    status_code = 404


class UpstreamError(TrackingError):
    """The datastore or identity provider failed while serving the request."""

    status_code = 500
