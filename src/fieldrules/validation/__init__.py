"""Rule chains for validating object properties and collection elements.

Hosts resolve a property value, build a RuleChain for it and run the
caller's configure routine; every failing check lands on the shared
ValidationContext as a formatted failure.
"""

from .accessor import ANY, default_for, make_accessor, resolve
from .attachment import ChainAttachment
from .chain import RuleChain
from .context import ValidationContext, ValidationFailure, ValidationResult
from .framework import PropertyRule, Validator
from .predicates import (
    adapt,
    no_args,
    on_element,
    on_parent_and_element,
    on_parent_element_context,
    on_value,
)

__all__ = [
    "ANY",
    "default_for",
    "make_accessor",
    "resolve",
    "ChainAttachment",
    "RuleChain",
    "ValidationContext",
    "ValidationFailure",
    "ValidationResult",
    "PropertyRule",
    "Validator",
    "adapt",
    "no_args",
    "on_element",
    "on_parent_and_element",
    "on_parent_element_context",
    "on_value",
]
