"""
A minimal sequential runner.

Each example gets a fresh :class:`~letscope.memo.ExampleScope`. Before-hooks run
outer-to-inner, then the example body. Any exception fails the example and is
kept on its :class:`ExampleResult`; later examples are unaffected.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Final, Iterator

from letscope.config import ExampleOrder, RunnerConfig
from letscope.dsl import GroupDefinition, build
from letscope.memo import ExampleScope, MemoCache
from letscope.registry import ExampleDefinition, GroupNode, Hook

_logger: Final[logging.Logger] = logging.getLogger(__name__)


class Outcome(Enum):
    PASSED = auto()
    FAILED = auto()


@dataclass(frozen=True, kw_only=True, slots=True)
class ExampleResult:
    example: ExampleDefinition
    outcome: Outcome
    error: Exception | None = None

    @property
    def description(self) -> str:
        return self.example.full_description

    @property
    def message(self) -> str | None:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"


@dataclass(kw_only=True, slots=True)
class RunReport:
    results: list[ExampleResult] = field(default_factory=list)
    seed: int | None = None

    @property
    def passed(self) -> list[ExampleResult]:
        return [result for result in self.results if result.outcome is Outcome.PASSED]

    @property
    def failed(self) -> list[ExampleResult]:
        return [result for result in self.results if result.outcome is Outcome.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def __getitem__(self, description: str) -> ExampleResult:
        """Look up a result by its example's full description."""
        for result in self.results:
            if result.description == description:
                return result
        raise KeyError(description)


def iter_examples(node: GroupNode) -> Iterator[tuple[GroupNode, ExampleDefinition]]:
    """Yield every example under ``node`` depth-first, in declaration order."""
    for definition in node.examples:
        yield node, definition
    for child in node.children:
        yield from iter_examples(child)


def _before_hooks(node: GroupNode) -> Iterator[Hook]:
    for ancestor in reversed(tuple(node.lineage())):
        yield from ancestor.hooks


def run_example(node: GroupNode, definition: ExampleDefinition) -> ExampleResult:
    scope = ExampleScope(innermost=node, memo=MemoCache())
    try:
        for hook in _before_hooks(node):
            scope.call(hook.function)
        scope.call(definition.function)
    except Exception as e:
        _logger.debug("Example %r failed", definition.full_description, exc_info=e)
        return ExampleResult(example=definition, outcome=Outcome.FAILED, error=e)
    return ExampleResult(example=definition, outcome=Outcome.PASSED)


def run(
    target: GroupDefinition | GroupNode, config: RunnerConfig = RunnerConfig()
) -> RunReport:
    """Run every example of a group tree and collect the results."""
    root = build(target) if isinstance(target, GroupDefinition) else target

    selected = [
        (node, definition)
        for node, definition in iter_examples(root)
        if config.pattern is None or config.pattern in definition.full_description
    ]
    report = RunReport()
    if config.order is ExampleOrder.RANDOM:
        report.seed = config.seed if config.seed is not None else random.randrange(2**32)
        random.Random(report.seed).shuffle(selected)

    for node, definition in selected:
        result = run_example(node, definition)
        report.results.append(result)
        if result.outcome is Outcome.FAILED and config.fail_fast:
            _logger.info("Stopping after the first failure")
            break

    _logger.info(
        "%d examples, %d failures%s",
        len(report.results),
        len(report.failed),
        f" (seed {report.seed})" if report.seed is not None else "",
    )
    return report
