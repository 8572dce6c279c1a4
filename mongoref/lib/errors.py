class DBRefError(Exception):
    r"""
    Base class of the errors raised while building or resolving a database reference.

    Each subclass has a stable `code`, so callers can branch on the kind of error without parsing its message.
    """
    code: int = 0

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class InvalidRefTypeError(DBRefError, TypeError):
    """The `$ref` field (the collection name) is not a string."""
    code = 10


class InvalidDbTypeError(DBRefError, TypeError):
    """The `$db` field (the database name) is not a string."""
    code = 11


class MalformedSourceError(DBRefError):
    """The value from which the builder was asked to take the `$id` cannot provide one."""


class MissingIdError(MalformedSourceError, ValueError):
    code = 20


class UnsupportedSourceError(MalformedSourceError, TypeError):
    code = 21


class EmptyCollectionNameError(DBRefError, ValueError):
    code = 22


class SessionClosedError(DBRefError, RuntimeError):
    code = 30
