"""Property value resolution.

The rule chain never looks properties up itself. Hosts resolve an accessor
once, when a rule is declared, and hand the chain the extracted value plus
the property name.
"""

from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from ..errors import ConfigurationError, TypeMismatchError


class _AnyType:
    """Marker for permissive extraction with no committed comparison type."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY"


ANY = _AnyType()

_ZERO_CONSTRUCTIBLE = (int, float, complex, Decimal, str, bytes, bool, list, tuple, dict, set, frozenset)


def type_name(expected_type: Any) -> str:
    if isinstance(expected_type, tuple):
        return " | ".join(type_name(t) for t in expected_type)
    return getattr(expected_type, "__name__", repr(expected_type))


def default_for(expected_type: Any) -> Any:
    """Zero value of a type, or None when the type has no natural zero."""
    if expected_type in _ZERO_CONSTRUCTIBLE:
        return expected_type()
    return None


def resolve(owner: Any, property_name: str, expected_type: Any = ANY) -> Any:
    """Read a named property from an owner object.

    Mappings are read by key and a missing key counts as an absent value.
    Other objects are read by attribute; a missing attribute is a
    configuration error.

    Args:
        owner: Object holding the property
        property_name: Attribute or key name
        expected_type: Type the value must be an instance of, or ANY

    Returns:
        The value, or default_for(expected_type) when the value is absent

    Raises:
        ConfigurationError: If the owner has no such attribute
        TypeMismatchError: If the value is not an instance of expected_type
    """
    if isinstance(owner, Mapping):
        raw = owner.get(property_name)
    else:
        try:
            raw = getattr(owner, property_name)
        except AttributeError:
            raise ConfigurationError(
                f"'{type(owner).__name__}' has no property '{property_name}'",
                property_name=property_name,
            ) from None
    return conform(raw, expected_type, property_name)


def conform(raw: Any, expected_type: Any = ANY, property_name: str | None = None) -> Any:
    """Check an already extracted value against the expected type.

    Absent values become default_for(expected_type). Nothing is coerced.
    """
    if raw is None:
        return default_for(expected_type)
    if expected_type is ANY or isinstance(raw, expected_type):
        return raw
    raise TypeMismatchError(
        f"cannot convert property value to {type_name(expected_type)}, got {type(raw).__name__}",
        property_name=property_name,
    )


def make_accessor(property_name: str, expected_type: Any = ANY) -> Callable[[Any], Any]:
    """Build an owner -> value closure for one property."""
    if not property_name:
        raise ConfigurationError("property name must not be empty")

    def accessor(owner: Any) -> Any:
        return resolve(owner, property_name, expected_type)

    accessor.__name__ = f"get_{property_name}"
    return accessor


def is_ordered(value: Any) -> bool:
    """True if the value supports <= against a value of its own type."""
    try:
        value <= value
    except TypeError:
        return False
    return True


def ensure_ordered(value: Any, expected_type: Any, property_name: str | None = None) -> None:
    """Fail fast when a committed comparison type has no ordering.

    Permissive (ANY) extraction skips the check; comparisons then fail at
    the first min/max check instead.
    """
    if expected_type is ANY or value is None:
        return
    if not is_ordered(value):
        raise TypeMismatchError(
            f"{type(value).__name__} values are not ordered and cannot be used as {type_name(expected_type)}",
            property_name=property_name,
        )
