"""Validation context, failures and results.

A ValidationContext lives for exactly one top-level validation call. Rule
chains append failures to it; the host turns it into a ValidationResult
once every rule has run.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


def join_path(prefix: str, name: str | None) -> str:
    """Join a path prefix and a property name with a dot.

    Either side may be empty, in which case the other is returned alone.
    """
    if not prefix:
        return name or ""
    if not name:
        return prefix
    return f"{prefix}.{name}"


@dataclass(frozen=True)
class ValidationFailure:
    """A single failed check."""
    property_path: str
    message: str
    attempted_value: Any = None

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationContext:
    """Per-call state shared by every rule chain of one validation run."""
    instance_to_validate: Any
    property_path: str = ""
    failures: list[ValidationFailure] = field(default_factory=list)
    cancellation: asyncio.Event | None = None

    def add_failure(self, property_path: str, message: str, attempted_value: Any = None) -> None:
        """Append a failure. Failures keep insertion order and may repeat."""
        self.failures.append(ValidationFailure(property_path, message, attempted_value))
        logger.debug(f"Recorded failure for {property_path}: {message}")

    @contextmanager
    def scope(self, prefix: str) -> Iterator["ValidationContext"]:
        """Set the current path prefix for the duration of one target."""
        previous = self.property_path
        self.property_path = prefix
        try:
            yield self
        finally:
            self.property_path = previous

    def to_result(self) -> "ValidationResult":
        return ValidationResult(failures=list(self.failures))


@dataclass
class ValidationResult:
    """Outcome of a top-level validation call."""
    failures: list[ValidationFailure] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.failures

    @property
    def errors(self) -> list[str]:
        """Failure messages in reporting order."""
        return [failure.message for failure in self.failures]

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = valid, 1 = invalid."""
        return 0 if self.is_valid else 1

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "valid": self.is_valid,
            "exit_code": self.exit_code,
            "failures": [
                {
                    "property_path": failure.property_path,
                    "message": failure.message,
                }
                for failure in self.failures
            ]
        }
