"""Error taxonomy shared by the relay pipelines and the HTTP layer."""


class RelayError(Exception):
    """Base class for failures that map onto an HTTP status code."""

    status_code = 500


class InvalidInput(RelayError):
    """Missing upload, non-image upload, or a malformed region descriptor."""

    status_code = 400


class ConfigurationError(RelayError):
    """A required service URL is not configured."""

    status_code = 500


class ExtractionError(RelayError):
    """The region of interest could not be cut out of the source image."""

    status_code = 422


class FeatureExtractionError(RelayError):
    """The embedding service answered without a `features` field."""

    status_code = 500


class UpstreamServiceError(RelayError):
    """Network error, timeout, non-2xx or unparseable body from a service."""

    status_code = 500
