"""
letscope: lazily evaluated, memoized example bindings for behavioral tests.

Groups are declared as decorated classes and nest like lexical scopes. Every
example runs against its own scope: a binding's computation runs on first
access, at most once per example, and the innermost declaration of a key wins.

## Bindings

- ``@subject``: the anonymous subject, read as ``subject`` or through the
  one-liner ``is_expected`` / ``should``.
- ``@subject("name")``: a named subject, read as ``name`` or ``subject``.
- ``@let``: a named memoized binding.
- ``@eager``: forces a ``subject`` or ``let`` binding before every example.

Computations receive other bindings by parameter name, like pytest fixtures.
A parameter named after the binding being declared receives the value of the
declaration it overrides. Named subjects are the exception: they must be
self-contained, and such a parameter fails the example.

## Example

```python
from letscope import eager, example, group, let, run, subject

@group("an order log")
class OrderLog:
    @let
    def order():
        return []

    @eager
    @subject("log")
    def appended(order):
        order.append("declared")
        return order

    @example("forces the eager subject first")
    def forced_first(order):
        order.append("example")
        assert order == ["declared", "example"]

assert run(OrderLog).ok
```
"""

from letscope.config import ExampleOrder as ExampleOrder
from letscope.config import RunnerConfig as RunnerConfig
from letscope.config import load_config as load_config
from letscope.dsl import GroupDefinition as GroupDefinition
from letscope.dsl import before as before
from letscope.dsl import build as build
from letscope.dsl import eager as eager
from letscope.dsl import example as example
from letscope.dsl import group as group
from letscope.dsl import let as let
from letscope.dsl import subject as subject
from letscope.errors import CyclicResolutionError as CyclicResolutionError
from letscope.errors import ExpectationNotMetError as ExpectationNotMetError
from letscope.errors import NoShadowedBindingError as NoShadowedBindingError
from letscope.errors import SubjectError as SubjectError
from letscope.errors import SubjectAttributeError as SubjectAttributeError
from letscope.errors import UnboundKeyError as UnboundKeyError
from letscope.errors import (
    UnsupportedSuperInNamedSubjectError as UnsupportedSuperInNamedSubjectError,
)
from letscope.expectations import Expectation as Expectation
from letscope.expectations import expect as expect
from letscope.memo import BindingState as BindingState
from letscope.memo import ExampleScope as ExampleScope
from letscope.memo import MemoCache as MemoCache
from letscope.registry import BindingKind as BindingKind
from letscope.registry import Declaration as Declaration
from letscope.registry import GroupNode as GroupNode
from letscope.registry import SubjectSentinel as SubjectSentinel
from letscope.resolution import resolve as resolve
from letscope.resolution import resolve_shadowed as resolve_shadowed
from letscope.runner import ExampleResult as ExampleResult
from letscope.runner import Outcome as Outcome
from letscope.runner import RunReport as RunReport
from letscope.runner import run as run
from letscope.runner import run_example as run_example
