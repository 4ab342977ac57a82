"""Exception types raised for programmer misuse.

Validation failures are never raised; they are recorded on the
ValidationContext. The exceptions here signal mistakes in how rules
were configured and propagate out of the validation call.
"""


class FieldRulesError(Exception):
    """Base class for fieldrules errors."""

    def __init__(self, message: str, property_name: str | None = None):
        self.property_name = property_name
        super().__init__(message)


class ConfigurationError(FieldRulesError):
    """Raised when rules are configured incorrectly.

    Examples: a missing configure routine, an unknown property name,
    or a predicate whose parameters do not fit the expected shape.
    """


class TypeMismatchError(FieldRulesError, TypeError):
    """Raised when a value cannot be used as the expected comparison type."""
