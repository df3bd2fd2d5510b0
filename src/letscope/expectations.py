"""
One-liner expectations.

Matchers are plain predicates; an optional ``description`` attribute on the
matcher is used in failure messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from letscope.errors import ExpectationNotMetError

Matcher = Callable[[Any], bool]


def _describe(matcher: Matcher) -> str:
    description = getattr(matcher, "description", None)
    if description is not None:
        return str(description)
    return getattr(matcher, "__name__", repr(matcher))


@dataclass(frozen=True, kw_only=True, slots=True)
class Expectation:
    actual: Any

    def to(self, matcher: Matcher, message: str | None = None) -> None:
        if not matcher(self.actual):
            raise ExpectationNotMetError(
                message or f"expected {self.actual!r} to {_describe(matcher)}"
            )

    def not_to(self, matcher: Matcher, message: str | None = None) -> None:
        if matcher(self.actual):
            raise ExpectationNotMetError(
                message or f"expected {self.actual!r} not to {_describe(matcher)}"
            )


def expect(actual: Any) -> Expectation:
    return Expectation(actual=actual)
