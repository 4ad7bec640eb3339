"""Error taxonomy for the Spotlight briefing pipeline.

Every failure inside the pipeline is terminal for that invocation. Errors
propagate to the caller unchanged; nothing in the core retries or recovers.

Hierarchy:
    SpotlightError
        ConfigurationError: Missing credential or invalid settings
        StageError: Failure attributed to one pipeline stage
            EmptyResponseError: Backend returned no text
            ParseError: No JSON could be extracted or decoded
            SchemaError: Payload is missing required fields or has wrong types
            BackendError: Transport or model failure while calling the backend
"""


class SpotlightError(Exception):
    """Base class for all Spotlight errors."""


class ConfigurationError(SpotlightError):
    """Raised before any request is sent when configuration is unusable."""


class StageError(SpotlightError):
    """An error raised while running one pipeline stage.

    Attributes:
        stage: Stage name ('discovery' or 'writing'), empty if unknown
    """

    def __init__(self, message: str, stage: str = ""):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class EmptyResponseError(StageError):
    """The backend returned no text for a stage."""


class ParseError(StageError):
    """The raw response did not contain decodable JSON."""


class SchemaError(StageError):
    """The decoded payload does not have the expected shape."""


class BackendError(StageError):
    """The backend request itself failed (HTTP, quota, model behaviour)."""
