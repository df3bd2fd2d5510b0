"""
Class-body declaration of example groups.

Groups are written as decorated classes. Only members explicitly marked with
:func:`subject`, :func:`let`, :func:`before`, :func:`example` or :func:`group`
are declarations; any other plain function in the body becomes a helper
reachable as an attribute of the example scope.

Example::

    @group("Fibonacci")
    class FibonacciSpec:
        @subject
        def sequence():
            return [1, 1, 2, 3, 5]

        @group("extended")
        class Extended:
            @subject
            def longer(subject):
                return subject + [8, 13]

            @example("appends to the outer subject")
            def appends(subject):
                assert subject == [1, 1, 2, 3, 5, 8, 13]

    report = run(FibonacciSpec)

A member must not reuse the name of a decorator it is followed by in the same
class body (for instance a function named ``subject``), since the class body
would shadow the decorator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from types import FunctionType
from typing import Any, Callable, Iterator, Mapping, overload

from letscope.registry import (
    BindingKind,
    GroupNode,
    SubjectSentinel,
    binding_key,
)


class Member(ABC):
    """A declaration found in a group body."""

    __slots__ = ()

    @abstractmethod
    def install(self, node: GroupNode, attribute_name: str, /) -> None: ...


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class BindingDefinition(Member):
    function: Callable[..., Any]
    kind: BindingKind
    name: str | None = None
    is_eager: bool = False

    def install(self, node: GroupNode, attribute_name: str, /) -> None:
        match self.kind:
            case BindingKind.SUBJECT:
                node.declare(
                    SubjectSentinel.ANONYMOUS,
                    self.function,
                    kind=BindingKind.SUBJECT,
                    is_eager=self.is_eager,
                )
            case BindingKind.NAMED_SUBJECT:
                assert self.name is not None
                node.declare(
                    self.name,
                    self.function,
                    kind=BindingKind.NAMED_SUBJECT,
                    is_eager=self.is_eager,
                )
            case BindingKind.LET:
                node.declare(
                    binding_key(self.name or attribute_name),
                    self.function,
                    kind=BindingKind.LET,
                    is_eager=self.is_eager,
                )
            case _:
                raise ValueError(f"{self.kind.name} bindings cannot be declared directly")


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class HookDefinition(Member):
    function: Callable[..., Any]

    def install(self, node: GroupNode, attribute_name: str, /) -> None:
        node.add_before_hook(self.function)


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ExampleMember(Member):
    function: Callable[..., Any]
    description: str | None = None

    def install(self, node: GroupNode, attribute_name: str, /) -> None:
        description = self.description or attribute_name.replace("_", " ").strip()
        node.add_example(description, self.function)


@dataclass(frozen=True, kw_only=True)
class ClassBody(Mapping[str, Member]):
    """Members of a group class, in definition order."""

    underlying: type

    def __getitem__(self, key: str) -> Member:
        value = vars(self.underlying).get(key)
        if isinstance(value, Member):
            return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        for name, value in vars(self.underlying).items():
            if isinstance(value, Member):
                yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def helpers(self) -> Iterator[tuple[str, Callable[..., Any]]]:
        for name, value in vars(self.underlying).items():
            if isinstance(value, FunctionType) and not name.startswith("__"):
                yield name, value


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class GroupDefinition(Member):
    description: str
    described: object
    body: ClassBody

    def populate(self, node: GroupNode) -> None:
        for name, helper in self.body.helpers():
            node.add_helper(name, helper)
        for name, member in self.body.items():
            member.install(node, name)

    def install(self, node: GroupNode, attribute_name: str, /) -> None:
        self.populate(node.child(self.description, self.described))


def _description_of(target: object) -> str:
    if isinstance(target, str):
        return target
    return getattr(target, "__name__", None) or repr(target)


def group(
    target: object, /, description: str | None = None
) -> Callable[[type], GroupDefinition]:
    """
    Decorator that converts a class into a group definition.

    ``target`` is either the group's description or the object the group
    describes; a described object provides the implicit subject. Nested classes
    are only included when they are decorated with ``@group`` too.
    """
    if isinstance(target, str):
        described = None
        text = target if description is None else f"{target} {description}"
    else:
        described = target
        text = _description_of(target) if description is None else description

    def wrapper(cls: type) -> GroupDefinition:
        return GroupDefinition(description=text, described=described, body=ClassBody(underlying=cls))

    return wrapper


def build(definition: GroupDefinition) -> GroupNode:
    """Build the group tree of a top-level group definition."""
    root = GroupNode(description=definition.description, described=definition.described)
    definition.populate(root)
    return root


@overload
def subject(function: Callable[..., Any], /) -> BindingDefinition: ...


@overload
def subject(
    name: str | None = None, /, *, eager: bool = False
) -> Callable[[Callable[..., Any]], BindingDefinition]: ...


def subject(
    function_or_name: Callable[..., Any] | str | None = None,
    /,
    *,
    eager: bool = False,
) -> BindingDefinition | Callable[[Callable[..., Any]], BindingDefinition]:
    """
    Declare the subject of a group.

    ``@subject`` declares the anonymous subject. ``@subject("name")`` declares a
    named subject, readable both as ``name`` and as ``subject``. A named subject
    cannot reach the subject it overrides: a parameter named after it (or named
    ``subject``) fails the example. ``eager=True`` forces the subject before
    each example, like :func:`eager`.
    """
    if callable(function_or_name):
        return BindingDefinition(
            function=function_or_name, kind=BindingKind.SUBJECT, is_eager=eager
        )
    name = function_or_name

    def wrapper(function: Callable[..., Any]) -> BindingDefinition:
        if name is None:
            return BindingDefinition(function=function, kind=BindingKind.SUBJECT, is_eager=eager)
        return BindingDefinition(
            function=function, kind=BindingKind.NAMED_SUBJECT, name=name, is_eager=eager
        )

    return wrapper


@overload
def let(function: Callable[..., Any], /) -> BindingDefinition: ...


@overload
def let(
    name: str | None = None, /, *, eager: bool = False
) -> Callable[[Callable[..., Any]], BindingDefinition]: ...


def let(
    function_or_name: Callable[..., Any] | str | None = None,
    /,
    *,
    eager: bool = False,
) -> BindingDefinition | Callable[[Callable[..., Any]], BindingDefinition]:
    """
    Declare a memoized binding named after the function, or after ``name``.

    Unlike named subjects, a ``let`` binding may take a parameter with its own
    name to receive the value of the binding it overrides.
    """
    if callable(function_or_name):
        return BindingDefinition(function=function_or_name, kind=BindingKind.LET, is_eager=eager)
    name = function_or_name

    def wrapper(function: Callable[..., Any]) -> BindingDefinition:
        return BindingDefinition(function=function, kind=BindingKind.LET, name=name, is_eager=eager)

    return wrapper


def eager(definition: BindingDefinition, /) -> BindingDefinition:
    """Force a ``subject`` or ``let`` binding in a before-hook of every example."""
    return replace(definition, is_eager=True)


def before(function: Callable[..., Any], /) -> HookDefinition:
    """Run ``function`` before every example of the group and its nested groups."""
    return HookDefinition(function=function)


@overload
def example(function: Callable[..., Any], /) -> ExampleMember: ...


@overload
def example(description: str | None = None, /) -> Callable[[Callable[..., Any]], ExampleMember]: ...


def example(
    function_or_description: Callable[..., Any] | str | None = None, /
) -> ExampleMember | Callable[[Callable[..., Any]], ExampleMember]:
    """Declare an example; without a description, the function name is used."""
    if callable(function_or_description):
        return ExampleMember(function=function_or_description)
    description = function_or_description

    def wrapper(function: Callable[..., Any]) -> ExampleMember:
        return ExampleMember(function=function, description=description)

    return wrapper
