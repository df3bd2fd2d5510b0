"""
Error kinds raised while resolving bindings for a running example.

Every error propagates to the runner, which reports it as the failure of the
example that triggered it.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence


class SubjectError(Exception):
    """Base class for all binding resolution errors."""


class UnboundKeyError(SubjectError, KeyError):
    """No group in the resolution chain declares the requested binding."""

    def __init__(self, key: Hashable, group_description: str) -> None:
        self.key = key
        self.group_description = group_description
        super().__init__(key)

    def __str__(self) -> str:
        return f"No binding {_display(self.key)} declared in {self.group_description!r} or any enclosing group"


class NoShadowedBindingError(SubjectError, LookupError):
    """An override-call was used but no outer group declares the same binding."""

    def __init__(self, key: Hashable, group_description: str) -> None:
        self.key = key
        self.group_description = group_description
        super().__init__(
            f"No outer declaration of {_display(self.key)} is shadowed by the one in {group_description!r}"
        )


UNSUPPORTED_SUPER_MESSAGE = "`super` in named subjects is not supported"


class UnsupportedSuperInNamedSubjectError(SubjectError, NotImplementedError):
    """A named subject tried to invoke the declaration it overrides."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{UNSUPPORTED_SUPER_MESSAGE} (subject {name!r})")


class CyclicResolutionError(SubjectError, RecursionError):
    """A binding was requested again while its own computation was running."""

    def __init__(self, path: Sequence[Hashable]) -> None:
        self.path = tuple(path)
        super().__init__(
            "Cyclic binding resolution: " + " -> ".join(_display(key) for key in self.path)
        )


class SubjectAttributeError(SubjectError, RuntimeError):
    """
    The subject computation raised :class:`AttributeError`.

    Re-raised under this type so that attribute access on the example scope does
    not mistake the failure for a missing attribute. The original error is the
    ``__cause__``.
    """

    def __init__(self, error: AttributeError) -> None:
        super().__init__(f"Computing the subject raised AttributeError: {error}")


class ExpectationNotMetError(AssertionError):
    """Raised by one-liner expectations when the matcher rejects the value."""


def _display(key: Hashable) -> str:
    if isinstance(key, str):
        return repr(key)
    return "subject"
