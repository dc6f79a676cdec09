"""Exception types raised by TokenWatch."""


class TokenWatchError(Exception):
    """Base class for TokenWatch errors."""


class SampleUnavailable(TokenWatchError):
    """No usable time-series samples for a token or window."""


class PersistenceFailure(TokenWatchError):
    """A write to the data store failed."""


class ConfigValidationError(TokenWatchError):
    """An alert config or settings file failed validation."""


class ConfigNotFoundError(ConfigValidationError):
    """An alert config with the requested ID does not exist."""

    def __init__(self, config_id: int):
        super().__init__(f"Alert config {config_id} not found")
        self.config_id = config_id


class UnknownConditionType(TokenWatchError):
    """A condition type has no evaluator."""

    def __init__(self, condition_type: str):
        super().__init__(f"Unknown condition type: {condition_type}")
        self.condition_type = condition_type
