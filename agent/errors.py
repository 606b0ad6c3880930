class AgentError(Exception):
    pass


class ToolValidationFailure(AgentError):
    """Unknown tool name or arguments that do not match the tool's schema."""


class ToolExecutionFailure(AgentError):
    """A tool executor raised instead of returning an error text."""


class ModelUnavailable(AgentError):
    """The model provider could not be reached or returned an unusable response."""


class TurnFailed(AgentError):
    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause
