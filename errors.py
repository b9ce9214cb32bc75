class CinePromptError(Exception):
    """Base class for every error raised by the prompt authoring core"""


class ConfigurationError(CinePromptError):
    """A required credential or setting is missing"""


class InputError(CinePromptError):
    """A local precondition is unmet; nothing was sent to the model"""


class WorkflowBusyError(InputError):
    """An analyze or generate call is already in flight"""


class ControlsLockedError(InputError):
    """Editing controls are disabled in the current workflow state"""


class ServiceError(CinePromptError):
    """The model call failed or returned a payload we could not use"""


class ValidationError(CinePromptError):
    def __init__(self, field, message):
        super().__init__(f"{field}: {message}")
        self.field = field
