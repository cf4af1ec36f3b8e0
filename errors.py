class ComposerError(Exception):
    """Base class for every error raised by the composer core."""


class ValidationError(ComposerError):
    """Raised when an entity or composition fails validation.

    ``errors`` maps a field name to the list of messages for that field, so a
    caller can surface them next to the offending input.
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = {"base": [errors]}
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__(self.full_messages())

    def full_messages(self):
        parts = []
        for field, messages in self.errors.items():
            for message in messages:
                parts.append(message if field == "base" else f"{field} {message}")
        return "; ".join(parts)


class NotFoundError(ComposerError):
    """Raised when a platform or entity id does not resolve."""


class BrokenThreadError(NotFoundError):
    """Raised when a thread parent chain is missing a link or loops."""


class ConversionFailure(ComposerError):
    """Raised when a draft could not be converted; nothing was persisted."""


class StorageError(ComposerError):
    """Raised when the JSON store cannot be read or written."""
