"""fieldrules - Fluent rule chains for validating object fields.

fieldrules runs ordered checks against object properties and collection
elements, with cascade or stop-on-first-failure control and consistently
formatted, path-qualified error messages.
"""

__version__ = "0.1.0"
__description__ = "Fluent rule chains for validating object fields"

from fieldrules.config import FieldRulesConfig
from fieldrules.errors import ConfigurationError, FieldRulesError, TypeMismatchError
from fieldrules.validation import RuleChain, ValidationResult, Validator

__all__ = [
    "__version__",
    "__description__",
    "FieldRulesConfig",
    "ConfigurationError",
    "FieldRulesError",
    "TypeMismatchError",
    "RuleChain",
    "ValidationResult",
    "Validator",
]
