"""
Per-example memoization of bindings.

Each running example gets its own :class:`ExampleScope` backed by a fresh
:class:`MemoCache`. A binding's computation runs at most once per example; the
cache is dropped with the scope when the example finishes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from functools import partial
from typing import Any, Callable, Final, Iterator, Mapping

from letscope.errors import (
    CyclicResolutionError,
    SubjectAttributeError,
    UnboundKeyError,
)
from letscope.expectations import Expectation
from letscope.registry import (
    BindingKey,
    BindingKind,
    Declaration,
    GroupNode,
    SubjectSentinel,
    accessor_name,
    binding_key,
)
from letscope.resolution import resolve, resolve_arguments, resolve_shadowed

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class BindingState(Enum):
    UNRESOLVED = auto()
    RESOLVING = auto()
    """Only while the binding's own computation is on the call stack."""
    RESOLVED = auto()


@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class MemoCache:
    """Resolved values of one example, keyed by binding key."""

    _values: dict[BindingKey, object] = field(default_factory=dict, init=False, repr=False)
    _resolving: list[BindingKey] = field(default_factory=list, init=False, repr=False)

    def state(self, key: BindingKey) -> BindingState:
        if key in self._values:
            return BindingState.RESOLVED
        if key in self._resolving:
            return BindingState.RESOLVING
        return BindingState.UNRESOLVED

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __getitem__(self, key: BindingKey) -> object:
        return self._values[key]

    def __len__(self) -> int:
        return len(self._values)

    def begin(self, key: BindingKey) -> None:
        if key in self._resolving:
            cycle_start = self._resolving.index(key)
            raise CyclicResolutionError((*self._resolving[cycle_start:], key))
        self._resolving.append(key)

    def end(self, key: BindingKey) -> None:
        popped = self._resolving.pop()
        assert popped == key

    def store(self, key: BindingKey, value: object) -> None:
        self._values[key] = value


@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class ExampleScope(Mapping[str, object]):
    """
    The evaluation scope of one running example.

    Bindings are readable as attributes (``scope.subject``, ``scope.count``) or
    items (``scope["count"]``). Attribute access falls back to helper functions
    declared in the example's groups, bound to this scope.
    """

    innermost: GroupNode
    memo: MemoCache = field(default_factory=MemoCache)

    def get_or_compute(self, key: BindingKey) -> object:
        """Return the memoized value of ``key``, computing it on first access."""
        if key in self.memo:
            _logger.debug("Memo hit for %s", accessor_name(key))
            return self.memo[key]
        self.memo.begin(key)
        try:
            declaration = resolve(self.innermost, key)
            value = self.evaluate(declaration)
        finally:
            self.memo.end(key)
        self.memo.store(key, value)
        return value

    def evaluate(self, declaration: Declaration) -> object:
        """Run a declaration's computation against this scope, bypassing the cache."""
        if declaration.kind is BindingKind.SUBJECT_ALIAS:
            assert declaration.alias_of is not None
            return self.get_or_compute(declaration.alias_of)
        _logger.debug(
            "Computing %s declared in %r", declaration.name, declaration.owner.description
        )
        return self.call(declaration.function, declaration)

    def evaluate_shadowed(self, declaration: Declaration) -> object:
        """Evaluate the declaration that ``declaration`` overrides."""
        return self.evaluate(resolve_shadowed(declaration))

    def call(
        self, function: Callable[..., Any], declaration: Declaration | None = None
    ) -> Any:
        """Call a user function with its parameters resolved from this scope."""
        positional, keywords = resolve_arguments(function, self, declaration)
        return function(*positional, **keywords)

    def __getitem__(self, name: str) -> object:
        return self.get_or_compute(binding_key(name))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name=name, obj=self)
        if hasattr(type(self), name):
            # A member of the scope itself failed while being computed.
            raise AttributeError(name=name, obj=self)
        try:
            return self[name]
        except UnboundKeyError as e:
            if e.key != binding_key(name):
                raise
            helper = self.innermost.find_helper(name)
            if helper is None:
                raise AttributeError(str(e), name=name, obj=self) from e
            return partial(helper, self)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            resolve(self.innermost, binding_key(name))
        except UnboundKeyError:
            return False
        return True

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return hash(id(self))

    def __iter__(self) -> Iterator[str]:
        visited: set[BindingKey] = set()
        for node in self.innermost.lineage():
            for key in node.declarations:
                if key not in visited:
                    visited.add(key)
                    yield accessor_name(key)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @property
    def subject(self) -> object:
        try:
            return self.get_or_compute(SubjectSentinel.ANONYMOUS)
        except AttributeError as e:
            raise SubjectAttributeError(e) from e

    @property
    def is_expected(self) -> Expectation:
        return Expectation(actual=self.subject)

    def should(self, matcher: Callable[[Any], bool], message: str | None = None) -> None:
        self.is_expected.to(matcher, message)

    def should_not(self, matcher: Callable[[Any], bool], message: str | None = None) -> None:
        self.is_expected.not_to(matcher, message)
