"""Adapters onto the canonical predicate shape.

Rule chain predicates always receive five positional arguments:

    (property_name, property_value, parent, element, context)

Most predicates need fewer. The adapters below wrap a narrower callable so
it can be passed to RuleChain.must or RuleChain.must_async. They pass the
wrapped callable's return value through untouched, so they work for
coroutine functions too.
"""

import inspect
from collections.abc import Callable
from typing import Any

from ..errors import ConfigurationError

CANONICAL_ARITY = 5

Predicate = Callable[[str, Any, Any, Any, Any], Any]


def accepts_positional(func: Callable, count: int) -> bool:
    """True if func can be called with exactly `count` positional arguments."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without signature metadata; trust the caller.
        return True
    try:
        signature.bind(*([None] * count))
    except TypeError:
        return False
    return True


def positional_arity(func: Callable) -> int | None:
    """Number of positional parameters, or None for *args callables."""
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return None
    count = 0
    for parameter in parameters:
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            if parameter.default is inspect.Parameter.empty:
                count += 1
    return count


def no_args(func: Callable[[], Any]) -> Predicate:
    def predicate(property_name, property_value, parent, element, context):
        return func()
    return predicate


def on_value(func: Callable[[Any], Any]) -> Predicate:
    """Wrap a predicate over the extracted property value."""
    def predicate(property_name, property_value, parent, element, context):
        return func(property_value)
    return predicate


def on_element(func: Callable[[Any], Any]) -> Predicate:
    """Wrap a predicate over the owning element."""
    def predicate(property_name, property_value, parent, element, context):
        return func(element)
    return predicate


def on_parent_and_element(func: Callable[[Any, Any], Any]) -> Predicate:
    def predicate(property_name, property_value, parent, element, context):
        return func(parent, element)
    return predicate


def on_parent_element_context(func: Callable[[Any, Any, Any], Any]) -> Predicate:
    def predicate(property_name, property_value, parent, element, context):
        return func(parent, element, context)
    return predicate


_BY_ARITY = {
    0: no_args,
    1: on_element,
    2: on_parent_and_element,
    3: on_parent_element_context,
}


def adapt(func: Callable) -> Predicate:
    """Pick an adapter from the number of positional parameters.

    0 -> no_args, 1 -> on_element, 2 -> on_parent_and_element,
    3 -> on_parent_element_context, 5 or *args -> unchanged.

    Raises:
        ConfigurationError: For None or any other parameter count
    """
    if func is None:
        raise ConfigurationError("predicate must not be None")
    arity = positional_arity(func)
    if arity is None or arity == CANONICAL_ARITY:
        return func
    if arity in _BY_ARITY:
        return _BY_ARITY[arity](func)
    raise ConfigurationError(
        f"unsupported predicate shape: {arity} positional parameters "
        f"(expected 0, 1, 2, 3 or {CANONICAL_ARITY})"
    )


def check_canonical(func: Callable) -> None:
    """Raise ConfigurationError unless func takes the five canonical arguments."""
    if func is None:
        raise ConfigurationError("predicate must not be None")
    if not callable(func):
        raise ConfigurationError(f"predicate must be callable, got {type(func).__name__}")
    if not accepts_positional(func, CANONICAL_ARITY):
        raise ConfigurationError(
            "predicate must accept (property_name, property_value, parent, element, context); "
            "wrap narrower callables with fieldrules.validation.predicates.adapt"
        )
