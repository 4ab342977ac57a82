"""Bridge from host property rules to rule chains.

A ChainAttachment registers one host predicate that, for every target the
host visits, extracts the property value, builds a fresh RuleChain and runs
the caller's configure routine against it. The host predicate always
reports success: chain failures reach the context directly, so the host's
own stop-on-failure handling never sees them.
"""

import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..errors import ConfigurationError
from .accessor import ANY, conform, make_accessor
from .chain import RuleChain
from .context import ValidationContext
from .predicates import positional_arity

if TYPE_CHECKING:
    from .framework import PropertyRule


class ChainAttachment:
    """Runs rule chains for one property (or the whole element) of each target."""

    def __init__(
        self,
        rule: "PropertyRule",
        property_name: str | None = None,
        expected_type: Any = ANY,
        accessor: Callable[[Any], Any] | None = None,
    ):
        self.rule = rule
        self.property_name = property_name
        self.expected_type = expected_type
        if accessor is None and property_name:
            accessor = make_accessor(property_name, expected_type)
        self._accessor = accessor

    def _extract(self, element: Any) -> Any:
        if self._accessor is None:
            return conform(element, self.expected_type, self.property_name)
        return self._accessor(element)

    def build_chain(self, element: Any, context: ValidationContext) -> RuleChain:
        return RuleChain(
            self.property_name,
            self._extract(element),
            element,
            context,
            expected_type=self.expected_type,
            cascade=self.rule.chain_cascade,
        )

    def use_rules(self, configure: Callable[[RuleChain], Any]) -> "PropertyRule":
        """Run configure(chain) synchronously for every target."""
        if configure is None:
            raise ConfigurationError("configure routine must not be None", self.property_name)
        if positional_arity(configure) not in (1, None):
            raise ConfigurationError("configure routine must accept exactly one argument (chain)", self.property_name)

        def run_chain(parent: Any, value: Any, context: ValidationContext) -> bool:
            pending = configure(self.build_chain(value, context))
            if inspect.isawaitable(pending):
                if inspect.iscoroutine(pending):
                    pending.close()
                raise ConfigurationError("use_rules_async is required for async checks", self.property_name)
            return True

        return self.rule.must(run_chain)

    def use_rules_async(self, configure: Callable[..., Any]) -> "PropertyRule":
        """Run an async configure routine for every target.

        configure takes (chain) or (chain, cancellation) and returns an
        awaitable, typically the result of chain.must_async(...).
        """
        if configure is None:
            raise ConfigurationError("configure routine must not be None", self.property_name)
        arity = positional_arity(configure)
        if arity is None:
            arity = 1
        if arity not in (1, 2):
            raise ConfigurationError(
                "configure routine must accept (chain) or (chain, cancellation)", self.property_name
            )

        async def run_chain(parent: Any, value: Any, context: ValidationContext, cancellation: Any) -> bool:
            chain = self.build_chain(value, context)
            pending = configure(chain) if arity == 1 else configure(chain, cancellation)
            if not inspect.isawaitable(pending):
                raise ConfigurationError(
                    f"async configure routine returned {type(pending).__name__}, expected an awaitable",
                    self.property_name,
                )
            await pending
            return True

        return self.rule.must_async(run_chain)
