"""Custom exceptions for the smartwatch health monitor."""


class SmartwatchHealthError(Exception):
    """Base exception for all smartwatch health monitor errors."""

    pass


class ConfigurationError(SmartwatchHealthError):
    """Raised when there is a configuration error."""

    pass


class AuthenticationError(SmartwatchHealthError):
    """Raised when authentication fails."""

    pass


class ParsingError(SmartwatchHealthError):
    """Raised when file or line parsing fails."""

    pass


class TooFewFieldsError(ParsingError):
    """Raised when a delimited line has fewer columns than required."""

    def __init__(self, line: str, field_count: int, required: int) -> None:
        super().__init__(
            f"Expected at least {required} fields, got {field_count}: {line!r}"
        )
        self.line = line
        self.field_count = field_count
        self.required = required


class InvalidNumberError(ParsingError):
    """Raised when a delimited field cannot be converted to its numeric type."""

    def __init__(self, field_name: str, value: str) -> None:
        super().__init__(f"Invalid value for {field_name}: {value!r}")
        self.field_name = field_name
        self.value = value


class MalformedRecordError(SmartwatchHealthError):
    """Raised when a key-value record cannot be converted to a reading."""

    pass


class FitClientError(SmartwatchHealthError):
    """Raised when Google Fit API operations fail."""

    pass


class FirestoreClientError(SmartwatchHealthError):
    """Raised when Firestore operations fail."""

    pass


class StorageClientError(SmartwatchHealthError):
    """Raised when Cloud Storage operations fail."""

    pass


class EnvironmentConfigError(SmartwatchHealthError):
    """Raised when a Firebase environment cannot be initialized."""

    pass
