"""Tests for the rule chain checks and cascade handling."""

import asyncio
import re
from decimal import Decimal

import pytest

from fieldrules.errors import ConfigurationError, TypeMismatchError
from fieldrules.validation.accessor import ANY
from fieldrules.validation.chain import RuleChain
from fieldrules.validation.context import ValidationContext
from fieldrules.validation.predicates import no_args, on_value


def make_chain(value, name="X", prefix="", cascade=False, expected_type=ANY, element=None):
    context = ValidationContext(instance_to_validate={"root": True}, property_path=prefix)
    chain = RuleChain(name, value, element, context, expected_type=expected_type, cascade=cascade)
    return chain, context


def messages(context):
    return [failure.message for failure in context.failures]


class Reiterable:
    """Iterable without a length."""

    def __init__(self, items):
        self.items = items

    def __iter__(self):
        return iter(self.items)


class TestCascade:
    """Test cascade and stop-on-first-failure behaviour."""

    def test_cascade_reports_every_failing_check(self):
        chain, context = make_chain("")

        chain.cascade().not_empty().length(1, 10)

        assert messages(context) == [
            "'X' must not be empty.",
            "'X' must be between 1 and 10 characters. You entered 0 characters.",
        ]

    def test_no_cascade_stops_after_first_failure(self):
        calls = []
        chain, context = make_chain(None)

        chain.not_empty().length(1, 10).must(no_args(lambda: calls.append("called") or False), "third")

        assert messages(context) == ["'X' must not be empty."]
        assert calls == []

    def test_skipped_checks_do_not_evaluate_regex_or_bounds(self):
        chain, context = make_chain(None)

        chain.not_empty().matches(r"\d").max(5).min(1).min_length(3).max_length(1).length(2)

        assert len(context.failures) == 1

    def test_cascade_counts_only_failing_checks_in_order(self):
        chain, context = make_chain("abc")

        (chain.cascade()
            .not_empty()
            .length(5, 10)
            .matches(r"^\d+$")
            .must(on_value(lambda value: value.startswith("a")), "must start with a.")
            .max_length(2))

        assert messages(context) == [
            "'X' must be between 5 and 10 characters. You entered 3 characters.",
            "'X' has invalid format value.",
            "'X' must not be more than 2 characters. You entered 3 characters.",
        ]

    def test_cascade_does_not_change_failure_state(self):
        chain, context = make_chain(None)

        chain.not_empty()
        assert chain.has_failed is True

        chain.cascade()
        assert chain.has_failed is True
        assert chain.cascade_enabled is True

        chain.length(1, 2)
        assert len(context.failures) == 2

    def test_passing_chain_stays_clean(self):
        chain, context = make_chain("hello")

        chain.not_empty().length(1, 10).matches("ell")

        assert chain.has_failed is False
        assert context.failures == []

    def test_cascade_enabled_from_constructor(self):
        chain, context = make_chain("", cascade=True)

        chain.not_empty().length(1, 3)

        assert len(context.failures) == 2

    def test_same_configuration_is_idempotent(self):
        def configure(chain):
            chain.cascade().not_empty().length(2, 4).matches("z")

        first_chain, first = make_chain("")
        second_chain, second = make_chain("")
        configure(first_chain)
        configure(second_chain)

        assert first.failures == second.failures


class TestPaths:
    """Test property path formatting."""

    def test_prefix_and_name_are_joined(self):
        chain, context = make_chain(None, name="name", prefix="items[0]")

        chain.not_empty()

        failure = context.failures[0]
        assert failure.property_path == "items[0].name"
        assert failure.message == "'items[0].name' must not be empty."

    def test_element_chain_uses_prefix_only(self):
        chain, context = make_chain("", name=None, prefix="tags[2]")

        chain.not_empty()

        assert messages(context) == ["'tags[2]' must not be empty."]
        assert chain.property_name == ""

    def test_attempted_value_is_recorded(self):
        chain, context = make_chain(42)

        chain.max(10)

        assert context.failures[0].attempted_value == 42


class TestNotEmpty:
    """Test the broad emptiness check."""

    @pytest.mark.parametrize("value", [
        None, "", "   ", "\t\n", [], {}, (), set(), 0, 0.0, False, Decimal("0"),
        (i for i in []), iter([]), Reiterable([]),
    ])
    def test_empty_values_fail(self, value):
        chain, context = make_chain(value)
        chain.not_empty()
        assert messages(context) == ["'X' must not be empty."]

    @pytest.mark.parametrize("value", ["a", " a ", [0], {"k": None}, 1, -1, 0.5, True, object(), Reiterable([0])])
    def test_non_empty_values_pass(self, value):
        chain, context = make_chain(value)
        chain.not_empty()
        assert context.failures == []

    def test_custom_message(self):
        chain, context = make_chain("")
        chain.not_empty("is required.")
        assert messages(context) == ["'X' is required."]

    def test_iterator_is_read_once(self):
        chain, context = make_chain(i for i in [1, 2])
        chain.not_empty().must(on_value(lambda value: value == (1, 2)))
        assert context.failures == []
        assert chain.property_value == (1, 2)


class TestBounds:
    """Test min and max checks."""

    @pytest.mark.parametrize("value,bound,is_valid", [
        (5, 10, True),
        (0, 5, True),
        (5, 0, False),
        (0, 0, True),
        (-10, -5, True),
    ])
    def test_max(self, value, bound, is_valid):
        chain, context = make_chain(value, expected_type=int)

        chain.max(bound)

        assert (not context.failures) is is_valid
        if not is_valid:
            assert messages(context) == [f"'X' cannot be greater than {bound}, You entered {value}."]

    @pytest.mark.parametrize("value,bound,is_valid", [
        (5, 10, False),
        (10, 5, True),
        (0, 0, True),
        (-5, -10, True),
        (-10, -5, False),
    ])
    def test_min(self, value, bound, is_valid):
        chain, context = make_chain(value, expected_type=int)

        chain.min(bound)

        assert (not context.failures) is is_valid
        if not is_valid:
            assert messages(context) == [f"'X' cannot be less than {bound}, You entered {value}."]

    def test_float_message_uses_str(self):
        chain, context = make_chain(5.5, expected_type=float)
        chain.max(2.0)
        assert messages(context) == ["'X' cannot be greater than 2.0, You entered 5.5."]

    def test_absent_value_passes_both_bounds(self):
        chain, context = make_chain(None)
        chain.cascade().max(0).min(10)
        assert context.failures == []

    def test_strings_compare_lexically(self):
        chain, context = make_chain("b", expected_type=str)
        chain.cascade().min("a").max("c")
        assert context.failures == []

    def test_incomparable_bound_raises_type_mismatch(self):
        chain, context = make_chain("abc")
        with pytest.raises(TypeMismatchError):
            chain.max(5)
        assert context.failures == []

    def test_custom_message(self):
        chain, context = make_chain(11)
        chain.max(10, "is too large.")
        assert messages(context) == ["'X' is too large."]


class TestOrderedCapability:
    """Test construction-time type checks."""

    def test_unordered_value_with_committed_type_fails_fast(self):
        with pytest.raises(TypeMismatchError):
            make_chain({"a": 1}, expected_type=dict)

    def test_unordered_value_allowed_in_any_mode(self):
        chain, context = make_chain({"a": 1})
        chain.not_empty()
        assert context.failures == []

    def test_absent_value_skips_check(self):
        chain, _ = make_chain(None, expected_type=dict)
        assert chain.property_value is None

    def test_property_value_is_read_only(self):
        chain, _ = make_chain("abc")
        with pytest.raises(AttributeError):
            chain.property_value = "other"
        with pytest.raises(AttributeError):
            chain.property_name = "other"


class TestLength:
    """Test inclusive length checks."""

    @pytest.mark.parametrize("value,is_valid", [
        ("", False),
        ("a", True),
        ("ab", True),
        ("abc", True),
        ("abcd", False),
        (None, False),
    ])
    def test_length_range_is_inclusive(self, value, is_valid):
        chain, context = make_chain(value)
        chain.length(1, 3)
        assert (not context.failures) is is_valid

    def test_length_range_message(self):
        chain, context = make_chain("abcd")
        chain.length(1, 3)
        assert messages(context) == ["'X' must be between 1 and 3 characters. You entered 4 characters."]

    def test_exact_length(self):
        chain, context = make_chain("abcd")
        chain.length(3)
        assert messages(context) == ["'X' must be 3 characters. You entered 4 characters."]

        chain, context = make_chain("abc")
        chain.length(3)
        assert context.failures == []

    def test_length_uses_string_form(self):
        chain, context = make_chain(12345)
        chain.length(5)
        assert context.failures == []

    def test_min_length(self):
        chain, context = make_chain("ab")
        chain.cascade().min_length(2).min_length(3)
        assert messages(context) == ["'X' must not be less than 3 characters. You entered 2 characters."]

    def test_max_length(self):
        chain, context = make_chain("abc")
        chain.cascade().max_length(3).max_length(2)
        assert messages(context) == ["'X' must not be more than 2 characters. You entered 3 characters."]

    @pytest.mark.parametrize("bounds", [(5, 1), (-1, 3)])
    def test_invalid_bounds_raise_even_after_failure(self, bounds):
        chain, _ = make_chain(None)
        chain.not_empty()
        with pytest.raises(ConfigurationError):
            chain.length(*bounds)


class TestMatches:
    """Test regular expression checks."""

    def test_search_semantics(self):
        chain, context = make_chain("abc123")
        chain.matches(r"\d+")
        assert context.failures == []

    def test_no_match_fails(self):
        chain, context = make_chain("abc")
        chain.matches(r"^\d+$")
        assert messages(context) == ["'X' has invalid format value."]

    def test_absent_value_fails(self):
        chain, context = make_chain(None)
        chain.matches(".*")
        assert messages(context) == ["'X' has invalid format value."]

    def test_compiled_pattern_and_custom_message(self):
        chain, context = make_chain("ABC")
        chain.matches(re.compile("^[a-z]+$"), "must be lower case.")
        assert messages(context) == ["'X' must be lower case."]

    def test_invalid_pattern_raises(self):
        chain, _ = make_chain("abc")
        with pytest.raises(ConfigurationError):
            chain.matches("(")


class TestMust:
    """Test custom predicate checks."""

    def test_predicate_receives_canonical_arguments(self):
        received = []
        element = object()
        chain, context = make_chain("value", name="name", element=element)

        chain.must(lambda *args: received.extend(args) or True)

        assert received == ["name", "value", {"root": True}, element, context]

    def test_default_message(self):
        chain, context = make_chain("value")
        chain.must(lambda name, value, parent, element, ctx: False)
        assert messages(context) == ["'X' is invalid."]

    def test_unsupported_shape_raises(self):
        chain, _ = make_chain("value")
        with pytest.raises(ConfigurationError):
            chain.must(lambda: True)

    def test_none_predicate_raises(self):
        chain, _ = make_chain("value")
        with pytest.raises(ConfigurationError):
            chain.must(None)


async def always_false(name, value, parent, element, context):
    await asyncio.sleep(0)
    return False


class TestMustAsync:
    """Test asynchronous predicate checks."""

    @pytest.mark.asyncio
    async def test_async_failure_follows_sync_failures_in_order(self):
        chain, context = make_chain(None)

        await chain.cascade().not_empty().length(1, 10).must_async(always_false, "rule must failed, third errors.")

        assert messages(context) == [
            "'X' must not be empty.",
            "'X' must be between 1 and 10 characters. You entered 0 characters.",
            "'X' rule must failed, third errors.",
        ]

    @pytest.mark.asyncio
    async def test_skipped_when_failed_without_cascade(self):
        calls = []

        async def tracked(*args):
            calls.append(args)
            return False

        chain, context = make_chain(None)
        result = await chain.not_empty().must_async(tracked)

        assert result is chain
        assert calls == []
        assert len(context.failures) == 1

    @pytest.mark.asyncio
    async def test_passing_predicate(self):
        async def ok(*args):
            return True

        chain, context = make_chain("value")
        await chain.must_async(ok)
        assert context.failures == []

    @pytest.mark.asyncio
    async def test_non_awaitable_result_raises(self):
        chain, _ = make_chain("value")
        with pytest.raises(ConfigurationError):
            await chain.must_async(lambda *args: True)

    def test_unsupported_shape_raises_immediately(self):
        chain, _ = make_chain("value")
        with pytest.raises(ConfigurationError):
            chain.must_async(lambda value: True)


class TestCancellation:
    """Test cancellation of pending async predicates."""

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        calls = []

        async def tracked(*args):
            calls.append(args)
            return False

        chain, context = make_chain("value")
        context.cancellation = asyncio.Event()
        context.cancellation.set()

        with pytest.raises(asyncio.CancelledError):
            await chain.must_async(tracked)

        assert calls == []
        assert context.failures == []

    @pytest.mark.asyncio
    async def test_cancelled_while_pending(self):
        async def slow(*args):
            await asyncio.sleep(10)
            return False

        chain, context = make_chain("value")
        context.cancellation = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, context.cancellation.set)

        with pytest.raises(asyncio.CancelledError):
            await chain.must_async(slow, "never recorded")

        assert context.failures == []

    @pytest.mark.asyncio
    async def test_unset_event_does_not_interfere(self):
        chain, context = make_chain("value")
        context.cancellation = asyncio.Event()

        await chain.must_async(always_false, "failed.")

        assert messages(context) == ["'X' failed."]
