"""Rule chain: ordered checks against one extracted property value.

A chain is built for a single (property, value, element, context) tuple,
handed to the caller's configure routine and then dropped. Every check
returns the chain so checks can be composed fluently:

    chain.cascade().not_empty().length(1, 10).must(no_args(lambda: ok))

By default the chain stops at the first failing check: later checks are
skipped without evaluating anything. After cascade() every check runs and
each failing check reports its own failure.
"""

import asyncio
import contextlib
import inspect
import logging
import numbers
import re
from collections.abc import Awaitable, Callable, Iterable, Iterator, Sized
from typing import Any

from ..errors import ConfigurationError, TypeMismatchError
from .accessor import ANY, ensure_ordered
from .context import ValidationContext, join_path
from .predicates import check_canonical

logger = logging.getLogger(__name__)

DEFAULT_PREDICATE_MESSAGE = "is invalid."

_NOTHING = object()


class RuleChain:
    """Fluent, stateful evaluator for one property value.

    Attributes:
        cascade_enabled: Keep evaluating after a failure
        has_failed: At least one evaluated check failed
        element: Object that owns the property (collection element or root)
        context: Validation context failures are reported to
    """

    def __init__(
        self,
        property_name: str | None,
        property_value: Any,
        element: Any,
        context: ValidationContext,
        expected_type: Any = ANY,
        cascade: bool = False,
    ):
        if isinstance(property_value, Iterator):
            # One-shot iterators are read once so every check sees the same items.
            property_value = tuple(property_value)
        ensure_ordered(property_value, expected_type, property_name)
        self._property_name = property_name or ""
        self._property_value = property_value
        self._expected_type = expected_type
        self.element = element
        self.context = context
        self.cascade_enabled = cascade
        self.has_failed = False

    @property
    def property_name(self) -> str:
        return self._property_name

    @property
    def property_value(self) -> Any:
        return self._property_value

    @property
    def parent(self) -> Any:
        """Root object of the validation run."""
        return self.context.instance_to_validate

    @property
    def property_path(self) -> str:
        return join_path(self.context.property_path, self._property_name)

    def __repr__(self) -> str:
        state = "failed" if self.has_failed else "clean"
        return f"RuleChain({self.property_path!r}, {state}, cascade={self.cascade_enabled})"

    def cascade(self) -> "RuleChain":
        """Evaluate every later check even after a failure."""
        self.cascade_enabled = True
        return self

    def not_empty(self, message: str | None = None) -> "RuleChain":
        if self._should_evaluate() and self._is_empty():
            self._add_failure(message or "must not be empty.")
        return self

    def max(self, bound: Any, message: str | None = None) -> "RuleChain":
        """Value must be less than or equal to bound. Absent values pass."""
        if not self._should_evaluate() or self._property_value is None:
            return self
        if not self._compare(lambda value: value <= bound, bound):
            self._add_failure(message or f"cannot be greater than {bound}, You entered {self._property_value}.")
        return self

    def min(self, bound: Any, message: str | None = None) -> "RuleChain":
        """Value must be greater than or equal to bound. Absent values pass."""
        if not self._should_evaluate() or self._property_value is None:
            return self
        if not self._compare(lambda value: value >= bound, bound):
            self._add_failure(message or f"cannot be less than {bound}, You entered {self._property_value}.")
        return self

    def length(self, minimum: int, maximum: int | None = None, message: str | None = None) -> "RuleChain":
        """Length of str(value) must lie within [minimum, maximum].

        Called with a single bound the length must match it exactly.
        """
        if maximum is None:
            return self._exact_length(minimum, message)
        self._check_bounds(minimum, maximum)
        if not self._should_evaluate():
            return self
        length = self._length()
        if not minimum <= length <= maximum:
            self._add_failure(
                message
                or f"must be between {minimum} and {maximum} characters. You entered {length} characters."
            )
        return self

    def min_length(self, minimum: int, message: str | None = None) -> "RuleChain":
        self._check_bounds(minimum, minimum)
        if not self._should_evaluate():
            return self
        length = self._length()
        if length < minimum:
            self._add_failure(
                message or f"must not be less than {minimum} characters. You entered {length} characters."
            )
        return self

    def max_length(self, maximum: int, message: str | None = None) -> "RuleChain":
        self._check_bounds(0, maximum)
        if not self._should_evaluate():
            return self
        length = self._length()
        if length > maximum:
            self._add_failure(
                message or f"must not be more than {maximum} characters. You entered {length} characters."
            )
        return self

    def matches(self, pattern: str | re.Pattern, message: str | None = None) -> "RuleChain":
        """str(value) must contain a match for pattern. Absent values fail."""
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"invalid pattern {pattern!r}: {e}", self._property_name) from e
        if not self._should_evaluate():
            return self
        value = self._property_value
        if value is None or compiled.search(str(value)) is None:
            self._add_failure(message or "has invalid format value.")
        return self

    def must(self, predicate: Callable[..., Any], message: str = DEFAULT_PREDICATE_MESSAGE) -> "RuleChain":
        """Custom check with the canonical five-argument predicate shape.

        See fieldrules.validation.predicates for adapters.
        """
        check_canonical(predicate)
        if self._should_evaluate() and not predicate(*self._predicate_args()):
            self._add_failure(message)
        return self

    def must_async(
        self, predicate: Callable[..., Awaitable[Any]], message: str = DEFAULT_PREDICATE_MESSAGE
    ) -> Awaitable["RuleChain"]:
        """Awaitable variant of must(); the predicate returns an awaitable."""
        check_canonical(predicate)
        return self._must_async(predicate, message)

    async def _must_async(self, predicate: Callable[..., Awaitable[Any]], message: str) -> "RuleChain":
        if not self._should_evaluate():
            return self
        pending = predicate(*self._predicate_args())
        if not inspect.isawaitable(pending):
            raise ConfigurationError(
                f"async predicate returned {type(pending).__name__}, expected an awaitable",
                self._property_name,
            )
        if not await self._await_cancellable(pending):
            self._add_failure(message)
        return self

    async def _await_cancellable(self, pending: Awaitable[Any]) -> Any:
        cancellation = self.context.cancellation
        if cancellation is None:
            return await pending

        if cancellation.is_set():
            if inspect.iscoroutine(pending):
                pending.close()
            raise asyncio.CancelledError(f"validation of {self.property_path} was cancelled")

        task = asyncio.ensure_future(pending)
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await waiter

        if task in done:
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug(f"Cancelled pending predicate for {self.property_path}")
        raise asyncio.CancelledError(f"validation of {self.property_path} was cancelled")

    def _should_evaluate(self) -> bool:
        return self.cascade_enabled or not self.has_failed

    def _predicate_args(self) -> tuple:
        return (self._property_name, self._property_value, self.parent, self.element, self.context)

    def _compare(self, comparison: Callable[[Any], bool], bound: Any) -> bool:
        try:
            return bool(comparison(self._property_value))
        except TypeError as e:
            raise TypeMismatchError(
                f"cannot compare {type(self._property_value).__name__} with {type(bound).__name__}",
                self._property_name,
            ) from e

    def _length(self) -> int:
        value = self._property_value
        return 0 if value is None else len(str(value))

    def _exact_length(self, exact: int, message: str | None) -> "RuleChain":
        self._check_bounds(exact, exact)
        if not self._should_evaluate():
            return self
        length = self._length()
        if length != exact:
            self._add_failure(message or f"must be {exact} characters. You entered {length} characters.")
        return self

    def _check_bounds(self, minimum: int, maximum: int) -> None:
        if minimum < 0 or maximum < minimum:
            raise ConfigurationError(
                f"invalid length bounds ({minimum}, {maximum})", self._property_name
            )

    def _is_empty(self) -> bool:
        value = self._property_value
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, Sized):
            return len(value) == 0
        if isinstance(value, Iterable):
            return next(iter(value), _NOTHING) is _NOTHING
        # Numeric zero is the default value of every number type, bool included.
        if isinstance(value, numbers.Number):
            return value == 0
        return False

    def _add_failure(self, template: str) -> "RuleChain":
        self.has_failed = True
        path = self.property_path
        self.context.add_failure(path, f"'{path}' {template}", self._property_value)
        logger.debug(f"Check failed for {path} (cascade={self.cascade_enabled})")
        return self
