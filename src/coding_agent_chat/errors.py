"""Error taxonomy shared by the core components and the API boundary."""


class CodingAgentError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500


class NotFoundError(CodingAgentError):
    """Project, file or conversation does not exist."""

    status_code = 404


class InvalidRequestError(CodingAgentError):
    """A required field is missing or a value is not acceptable."""

    status_code = 400


class UnsafePathError(InvalidRequestError):
    """File path would escape the project root."""


class SpawnError(CodingAgentError):
    """Child process could not be launched."""


class UpstreamError(CodingAgentError):
    """Agent capability call failed or timed out."""


class BinaryFileError(InvalidRequestError):
    """File exists but is not UTF-8 text."""
