"""
Group nodes and the bindings declared on them.

A :class:`GroupNode` mirrors one nested example group. It owns the
:class:`Declaration` objects declared in its body, its before-hooks, its examples
and its helper functions. Nodes are built once, before any example runs, and are
only read afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Final, Iterator, TypeAlias

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class SubjectSentinel(Enum):
    """Reserved key of the anonymous binding."""

    ANONYMOUS = auto()
    """
    The key of ``subject``. Bare subjects, named subjects (through an alias) and
    implicit subjects all resolve under this key.
    """


BindingKey: TypeAlias = str | SubjectSentinel

SUBJECT_ACCESSOR: Final = "subject"


def binding_key(name: str) -> BindingKey:
    """Map an accessor name to the key it resolves."""
    if name == SUBJECT_ACCESSOR:
        return SubjectSentinel.ANONYMOUS
    return name


def accessor_name(key: BindingKey) -> str:
    """Map a key back to the accessor name that reads it."""
    if key is SubjectSentinel.ANONYMOUS:
        return SUBJECT_ACCESSOR
    assert isinstance(key, str)
    return key


class BindingKind(Enum):
    SUBJECT = auto()
    """A bare ``subject`` declaration."""

    NAMED_SUBJECT = auto()
    """
    A subject with an explicit name. It is published under its name and aliased
    by the anonymous key, and it may not invoke the declaration it overrides.
    """

    LET = auto()
    """A named memoized helper that does not alias the subject."""

    SUBJECT_ALIAS = auto()
    """The anonymous-key entry a named subject installs on its own group."""

    IMPLICIT_SUBJECT = auto()
    """A subject derived from the object a group describes."""


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class Declaration:
    """One deferred computation declared on a group."""

    key: BindingKey
    kind: BindingKind
    function: Callable[..., Any]
    owner: "GroupNode"
    is_eager: bool = False
    alias_of: str | None = None
    """For ``SUBJECT_ALIAS`` declarations, the named subject being aliased."""

    @property
    def name(self) -> str:
        return accessor_name(self.key)

    @property
    def allows_override_call(self) -> bool:
        return self.kind is not BindingKind.NAMED_SUBJECT

    def is_override_call(self, parameter_name: str) -> bool:
        """
        Whether a parameter of this declaration's function refers to the
        declaration this one shadows.

        For a named subject, the ``subject`` parameter is included as well, since
        the named subject also occupies the anonymous key of its group.
        """
        if parameter_name == self.name:
            return True
        return self.kind is BindingKind.NAMED_SUBJECT and parameter_name == SUBJECT_ACCESSOR


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class Hook:
    """A before-hook; ``forces`` is set for hooks installed by eager bindings."""

    function: Callable[..., Any]
    owner: "GroupNode"
    forces: BindingKey | None = None


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True, eq=False)
class ExampleDefinition:
    description: str
    function: Callable[..., Any]
    owner: "GroupNode"

    @property
    def full_description(self) -> str:
        return f"{self.owner.full_description} {self.description}".strip()


@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class GroupNode:
    """
    A node of the example group tree.

    ``parent`` is a back-reference only; a node owns its ``children``,
    ``declarations``, ``hooks``, ``examples`` and ``helpers``.
    """

    description: str
    parent: GroupNode | None = None
    described: object = None
    children: list[GroupNode] = field(default_factory=list)
    declarations: dict[BindingKey, Declaration] = field(default_factory=dict)
    hooks: list[Hook] = field(default_factory=list)
    examples: list[ExampleDefinition] = field(default_factory=list)
    helpers: dict[str, Callable[..., Any]] = field(default_factory=dict)

    def child(self, description: str, described: object = None) -> GroupNode:
        node = GroupNode(description=description, parent=self, described=described)
        self.children.append(node)
        return node

    def lineage(self) -> Iterator[GroupNode]:
        """Yield this node and its ancestors, innermost first."""
        node: GroupNode | None = self
        while node is not None:
            yield node
            node = node.parent

    @property
    def full_description(self) -> str:
        return " ".join(
            node.description for node in reversed(tuple(self.lineage())) if node.description
        )

    def declare(
        self,
        key: BindingKey,
        function: Callable[..., Any],
        *,
        kind: BindingKind,
        is_eager: bool = False,
    ) -> Declaration:
        """
        Register a deferred computation under ``key``, replacing any earlier
        declaration of the same key on this node. Nothing is evaluated.

        A named subject also installs an alias under the anonymous key, and an
        eager declaration also appends a before-hook that forces it.
        """
        declaration = Declaration(
            key=key, kind=kind, function=function, owner=self, is_eager=is_eager
        )
        replaced = self.declarations.get(key)
        if replaced is not None:
            _logger.debug(
                "Replacing declaration of %s in %r", declaration.name, self.description
            )
            self._drop_forcing_hook(replaced)
        self.declarations[key] = declaration

        if kind is BindingKind.NAMED_SUBJECT:
            assert isinstance(key, str)
            self.declarations[SubjectSentinel.ANONYMOUS] = Declaration(
                key=SubjectSentinel.ANONYMOUS,
                kind=BindingKind.SUBJECT_ALIAS,
                function=function,
                owner=self,
                alias_of=key,
            )

        if is_eager:

            def force(scope: Any, /) -> object:
                return scope.get_or_compute(key)

            self.hooks.append(Hook(function=force, owner=self, forces=key))

        _logger.debug(
            "Declared %s %s in %r%s",
            kind.name.lower(),
            declaration.name,
            self.description,
            " (eager)" if is_eager else "",
        )
        return declaration

    def _drop_forcing_hook(self, replaced: Declaration) -> None:
        if replaced.is_eager:
            self.hooks = [hook for hook in self.hooks if hook.forces != replaced.key]

    def lookup_local(self, key: BindingKey) -> Declaration | None:
        return self.declarations.get(key)

    def add_before_hook(self, function: Callable[..., Any]) -> Hook:
        hook = Hook(function=function, owner=self)
        self.hooks.append(hook)
        return hook

    def add_example(self, description: str, function: Callable[..., Any]) -> ExampleDefinition:
        definition = ExampleDefinition(description=description, function=function, owner=self)
        self.examples.append(definition)
        return definition

    def add_helper(self, name: str, function: Callable[..., Any]) -> None:
        self.helpers[name] = function

    def find_helper(self, name: str) -> Callable[..., Any] | None:
        for node in self.lineage():
            helper = node.helpers.get(name)
            if helper is not None:
                return helper
        return None
