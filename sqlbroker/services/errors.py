class BrokerException(Exception):
    pass


class ValidationException(BrokerException):
    """A provisioning parameter failed validation; ``field`` names the offending parameter."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"validation error on field {field!r}: {message}")


class NotFoundException(BrokerException):
    pass


class ConflictException(BrokerException):
    pass


class InternalException(BrokerException):
    pass


class ConfigurationException(BrokerException):
    pass
