class StorefrontError(Exception):
    """Base class for failures reported back to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(StorefrontError):
    pass


class NotFound(StorefrontError):
    pass


class InvalidState(StorefrontError):
    pass
