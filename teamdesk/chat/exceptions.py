class ChatError(Exception):
    """Base class for chat domain errors."""

    default_message = "Chat operation failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ForbiddenError(ChatError):
    default_message = "You are not allowed to perform this action."


class NotFoundError(ChatError):
    default_message = "Not found."


class ChannelNotFoundError(NotFoundError):
    default_message = "Channel not found."


class MessageNotFoundError(NotFoundError):
    default_message = "Message not found."


class DuplicateKeyError(ChatError):
    default_message = "A channel with this key already exists."
