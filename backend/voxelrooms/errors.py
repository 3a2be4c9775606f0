"""Errors raised by the room synchronization services."""


class ActionError(Exception):
    """A submitted action was rejected before touching room state."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class InvalidAction(ActionError):
    """The action tag is not one the server understands."""


class MalformedPayload(ActionError):
    """A required field is missing or has the wrong type."""


class ChannelClosed(Exception):
    """Writing to a subscriber channel failed."""
