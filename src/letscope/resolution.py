"""
Resolution chain: find the declaration a key resolves to for a running example.

Groups shadow their ancestors by key, the way nested lexical scopes do. The chain
is walked from the innermost group of the running example outward, stopping at
the first group that declares the key.
"""

from __future__ import annotations

import logging
from inspect import Parameter, signature
from typing import TYPE_CHECKING, Any, Callable, Final, Mapping

from letscope.errors import (
    NoShadowedBindingError,
    UnboundKeyError,
    UnsupportedSuperInNamedSubjectError,
)
from letscope.registry import (
    BindingKey,
    BindingKind,
    Declaration,
    GroupNode,
    SubjectSentinel,
)

if TYPE_CHECKING:
    from letscope.memo import ExampleScope

_logger: Final[logging.Logger] = logging.getLogger(__name__)


def _first_declaration(start: GroupNode | None, key: BindingKey) -> Declaration | None:
    node = start
    while node is not None:
        declaration = node.lookup_local(key)
        if declaration is not None:
            return declaration
        node = node.parent
    return None


def _implicit_subject(innermost: GroupNode) -> Declaration | None:
    """
    Derive a subject from the nearest described object: a class is instantiated
    without arguments, anything else is the subject itself.
    """
    for node in innermost.lineage():
        described = node.described
        if described is None:
            continue
        if isinstance(described, type):

            def function() -> object:
                return described()

        else:

            def function() -> object:
                return described

        return Declaration(
            key=SubjectSentinel.ANONYMOUS,
            kind=BindingKind.IMPLICIT_SUBJECT,
            function=function,
            owner=node,
        )
    return None


def resolve(innermost: GroupNode, key: BindingKey) -> Declaration:
    """
    Return the nearest declaration of ``key`` visible from ``innermost``.

    :raises UnboundKeyError: If no group in the chain declares ``key``.
    """
    declaration = _first_declaration(innermost, key)
    if declaration is None and key is SubjectSentinel.ANONYMOUS:
        declaration = _implicit_subject(innermost)
    if declaration is None:
        raise UnboundKeyError(key, innermost.full_description)
    _logger.debug(
        "Resolved %s to the declaration in %r", declaration.name, declaration.owner.description
    )
    return declaration


def guard_override_call(declaration: Declaration) -> None:
    """
    Reject override-calls from named subjects.

    The check does not depend on whether an outer declaration exists.
    """
    if not declaration.allows_override_call:
        assert isinstance(declaration.key, str)
        raise UnsupportedSuperInNamedSubjectError(declaration.key)


def resolve_shadowed(declaration: Declaration) -> Declaration:
    """
    Return the declaration ``declaration`` overrides, searching from the parent
    of the group that owns it.

    An explicit subject with no explicit outer subject shadows the implicit
    subject of the nearest described object, including one described by its own
    group.

    :raises UnsupportedSuperInNamedSubjectError: If ``declaration`` is a named subject.
    :raises NoShadowedBindingError: If no outer group declares the same key.
    """
    guard_override_call(declaration)
    shadowed = _first_declaration(declaration.owner.parent, declaration.key)
    if (
        shadowed is None
        and declaration.key is SubjectSentinel.ANONYMOUS
        and declaration.kind is not BindingKind.IMPLICIT_SUBJECT
    ):
        shadowed = _implicit_subject(declaration.owner)
    if shadowed is None:
        raise NoShadowedBindingError(declaration.key, declaration.owner.full_description)
    return shadowed


def _receives_scope(parameter: Parameter) -> bool:
    return parameter.kind is Parameter.POSITIONAL_ONLY or parameter.name == "self"


def resolve_arguments(
    function: Callable[..., Any],
    scope: "ExampleScope",
    declaration: Declaration | None = None,
) -> tuple[tuple[Any, ...], Mapping[str, Any]]:
    """
    Resolve the arguments of a user function by parameter name, similar to
    pytest fixtures.

    1. A first parameter that is positional-only or named ``self`` receives the
       example scope itself.
    2. Inside a declaration, a parameter named after the declaration is the
       override-call and evaluates the shadowed declaration.
    3. Parameters with default values are left to their defaults.
    4. Any other parameter is read from the example scope, computing it if needed.
       Positional-only parameters are passed positionally, in order.
    """
    parameters = tuple(signature(function).parameters.values())
    positional: list[Any] = []
    if parameters and _receives_scope(parameters[0]):
        positional.append(scope)
        parameters = parameters[1:]

    def resolve_parameter(name: str) -> Any:
        if declaration is not None and declaration.is_override_call(name):
            return scope.evaluate_shadowed(declaration)
        return scope[name]

    keywords: dict[str, Any] = {}
    for parameter in parameters:
        if parameter.default is not Parameter.empty:
            continue
        if parameter.kind is Parameter.POSITIONAL_ONLY:
            positional.append(resolve_parameter(parameter.name))
        elif parameter.kind not in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            keywords[parameter.name] = resolve_parameter(parameter.name)
    return tuple(positional), keywords
