"""Host validator: property rules, per-element iteration and results.

Declare rules in a Validator subclass, then validate instances:

    class OrderValidator(Validator):
        def __init__(self, config=None):
            super().__init__(config)
            self.rule_for_each("items").for_property("name").use_rules(
                lambda chain: chain.cascade().not_empty().length(1, 10)
            )

    result = OrderValidator().validate(order)

Rules run in declaration order, targets in iteration order and predicates
in registration order. Validation failures end up in the result; misuse
(ConfigurationError, TypeMismatchError) propagates to the caller.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from ..config import FieldRulesConfig, create_default_config
from ..errors import ConfigurationError, TypeMismatchError
from .accessor import ANY, make_accessor
from .attachment import ChainAttachment
from .chain import DEFAULT_PREDICATE_MESSAGE
from .context import ValidationContext, ValidationResult
from .predicates import accepts_positional

logger = logging.getLogger(__name__)


@dataclass
class HostPredicate:
    """A must/must_async predicate registered on a property rule."""
    func: Callable[..., Any]
    message: str | None = None
    is_async: bool = False


class PropertyRule:
    """Rule for one property, or for each element of a collection property."""

    def __init__(
        self,
        property_name: str,
        expected_type: Any = ANY,
        each: bool = False,
        stop_on_failure: bool = False,
        chain_cascade: bool = False,
    ):
        self.property_name = property_name
        self.expected_type = expected_type
        self.each = each
        self.stop_on_failure = stop_on_failure
        self.chain_cascade = chain_cascade
        self.predicates: list[HostPredicate] = []
        self._accessor = make_accessor(property_name, ANY if each else expected_type)

    @property
    def is_async(self) -> bool:
        return any(predicate.is_async for predicate in self.predicates)

    def must(self, predicate: Callable[[Any, Any, ValidationContext], Any], message: str | None = None) -> "PropertyRule":
        """Add a predicate called as predicate(parent, value, context)."""
        if predicate is None or not accepts_positional(predicate, 3):
            raise ConfigurationError("predicate must accept (parent, value, context)", self.property_name)
        self.predicates.append(HostPredicate(predicate, message))
        return self

    def must_async(self, predicate: Callable[..., Any], message: str | None = None) -> "PropertyRule":
        """Add an async predicate called as predicate(parent, value, context, cancellation)."""
        if predicate is None or not accepts_positional(predicate, 4):
            raise ConfigurationError(
                "async predicate must accept (parent, value, context, cancellation)", self.property_name
            )
        self.predicates.append(HostPredicate(predicate, message, is_async=True))
        return self

    def stop_on_first_failure(self) -> "PropertyRule":
        """Skip this rule's remaining predicates for a target once one fails."""
        self.stop_on_failure = True
        return self

    def for_property(
        self, property_name: str, expected_type: Any = ANY, accessor: Callable[[Any], Any] | None = None
    ) -> ChainAttachment:
        """Attach rule chains to a property of each target."""
        if not property_name:
            raise ConfigurationError("property name must not be empty", self.property_name)
        return ChainAttachment(self, property_name, expected_type, accessor)

    def use_rules(self, configure: Callable) -> "PropertyRule":
        """Run a rule chain against each target itself."""
        return ChainAttachment(self, None, self.expected_type).use_rules(configure)

    def use_rules_async(self, configure: Callable) -> "PropertyRule":
        return ChainAttachment(self, None, self.expected_type).use_rules_async(configure)

    def targets(self, instance: Any) -> Iterator[tuple[str, Any]]:
        """Yield (path prefix, value) for every target of this rule."""
        value = self._accessor(instance)
        if not self.each:
            yield self.property_name, value
            return
        if value is None:
            return
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TypeMismatchError(
                f"rule_for_each needs a collection, got {type(value).__name__}", self.property_name
            )
        for index, element in enumerate(value):
            yield f"{self.property_name}[{index}]", element

    def _record(self, predicate: HostPredicate, prefix: str, value: Any, context: ValidationContext) -> None:
        message = predicate.message or DEFAULT_PREDICATE_MESSAGE
        context.add_failure(prefix, f"'{prefix}' {message}", value)

    def run(self, context: ValidationContext) -> None:
        parent = context.instance_to_validate
        for prefix, value in self.targets(parent):
            with context.scope(prefix):
                for predicate in self.predicates:
                    if predicate.func(parent, value, context):
                        continue
                    self._record(predicate, prefix, value, context)
                    if self.stop_on_failure:
                        break

    async def run_async(self, context: ValidationContext) -> None:
        parent = context.instance_to_validate
        for prefix, value in self.targets(parent):
            with context.scope(prefix):
                for predicate in self.predicates:
                    if predicate.is_async:
                        passed = await predicate.func(parent, value, context, context.cancellation)
                    else:
                        passed = predicate.func(parent, value, context)
                    if passed:
                        continue
                    self._record(predicate, prefix, value, context)
                    if self.stop_on_failure:
                        break


class Validator:
    """Collection of property rules validated against one instance at a time."""

    def __init__(self, config: FieldRulesConfig | None = None):
        self.config = config or create_default_config()
        self.rules: list[PropertyRule] = []

    def add_rule(self, rule: PropertyRule) -> PropertyRule:
        self.rules.append(rule)
        return rule

    def rule_for(self, property_name: str, expected_type: Any = ANY) -> PropertyRule:
        """Declare a rule for one property of the validated instance."""
        return self.add_rule(self._new_rule(property_name, expected_type, each=False))

    def rule_for_each(self, property_name: str, expected_type: Any = ANY) -> PropertyRule:
        """Declare a rule applied to each element of a collection property."""
        return self.add_rule(self._new_rule(property_name, expected_type, each=True))

    def _new_rule(self, property_name: str, expected_type: Any, each: bool) -> PropertyRule:
        return PropertyRule(
            property_name,
            expected_type,
            each=each,
            stop_on_failure=self.config.validation.stop_on_first_failure,
            chain_cascade=self.config.chain.cascade,
        )

    @property
    def has_async_rules(self) -> bool:
        return any(rule.is_async for rule in self.rules)

    def validate(self, instance: Any) -> ValidationResult:
        """Validate synchronously.

        Raises:
            ConfigurationError: If any rule needs validate_async
        """
        if self.has_async_rules:
            raise ConfigurationError(
                f"{type(self).__name__} contains asynchronous rules; use validate_async instead"
            )
        context = ValidationContext(instance)

        logger.info(f"Starting validation of {type(instance).__name__}")
        logger.info(f"Running {len(self.rules)} property rules")

        for rule in self.rules:
            logger.debug(f"Executing rule for: {rule.property_name}")
            rule.run(context)

        return self._finish(context)

    async def validate_async(self, instance: Any, cancellation: asyncio.Event | None = None) -> ValidationResult:
        """Validate, awaiting async predicates one at a time in declaration order."""
        context = ValidationContext(instance, cancellation=cancellation)

        logger.info(f"Starting async validation of {type(instance).__name__}")
        logger.info(f"Running {len(self.rules)} property rules")

        for rule in self.rules:
            logger.debug(f"Executing rule for: {rule.property_name}")
            await rule.run_async(context)

        return self._finish(context)

    def _finish(self, context: ValidationContext) -> ValidationResult:
        result = context.to_result()
        logger.info(f"Validation completed: {'valid' if result.is_valid else 'invalid'}")
        logger.info(f"Found {len(result.failures)} failures")
        return result
