"""Memoization of bindings within one example, and isolation between examples."""

import pytest

from letscope import (
    BindingKind,
    BindingState,
    CyclicResolutionError,
    ExampleScope,
    GroupNode,
    MemoCache,
    Outcome,
    UnboundKeyError,
    example,
    group,
    let,
    run,
)


class TestMemoCache:
    def test_state_transitions(self) -> None:
        root = GroupNode(description="root")
        observed: list[BindingState] = []
        memo = MemoCache()

        def value() -> int:
            observed.append(memo.state("value"))
            return 1

        root.declare("value", value, kind=BindingKind.LET)
        scope = ExampleScope(innermost=root, memo=memo)

        assert memo.state("value") is BindingState.UNRESOLVED
        assert scope["value"] == 1
        assert observed == [BindingState.RESOLVING]
        assert memo.state("value") is BindingState.RESOLVED

    def test_failed_computation_leaves_binding_unresolved(self) -> None:
        root = GroupNode(description="root")
        attempts: list[int] = []

        def flaky() -> int:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first attempt fails")
            return len(attempts)

        root.declare("flaky", flaky, kind=BindingKind.LET)
        scope = ExampleScope(innermost=root)

        with pytest.raises(RuntimeError):
            scope["flaky"]

        assert scope.memo.state("flaky") is BindingState.UNRESOLVED
        assert scope["flaky"] == 2


class TestGetOrCompute:
    def test_computation_runs_at_most_once(self) -> None:
        calls: list[int] = []
        root = GroupNode(description="root")

        def count() -> int:
            calls.append(1)
            return len(calls)

        root.declare("count", count, kind=BindingKind.LET)
        scope = ExampleScope(innermost=root)

        assert scope.count == 1
        assert scope["count"] == 1
        assert scope.get_or_compute("count") == 1
        assert calls == [1]

    def test_dependencies_are_resolved_by_name(self) -> None:
        root = GroupNode(description="root")
        root.declare("name", lambda: "World", kind=BindingKind.LET)
        root.declare("greeting", lambda name: f"Hello, {name}!", kind=BindingKind.LET)

        assert ExampleScope(innermost=root)["greeting"] == "Hello, World!"

    def test_outer_computation_sees_inner_dependencies(self) -> None:
        root = GroupNode(description="root")
        root.declare("name", lambda: "outer", kind=BindingKind.LET)
        root.declare("greeting", lambda name: f"Hello, {name}!", kind=BindingKind.LET)
        leaf = root.child("leaf")
        leaf.declare("name", lambda: "inner", kind=BindingKind.LET)

        assert ExampleScope(innermost=leaf)["greeting"] == "Hello, inner!"

    def test_scope_lists_visible_bindings(self) -> None:
        root = GroupNode(description="root")
        root.declare("a", lambda: 1, kind=BindingKind.LET)
        leaf = root.child("leaf")
        leaf.declare("b", lambda: 2, kind=BindingKind.LET)
        leaf.declare("a", lambda: 3, kind=BindingKind.LET)
        scope = ExampleScope(innermost=leaf)

        assert sorted(scope) == ["a", "b"]
        assert "a" in scope
        assert "missing" not in scope
        assert len(scope.memo) == 0

    def test_unbound_item_raises_unbound_key(self) -> None:
        scope = ExampleScope(innermost=GroupNode(description="root"))

        with pytest.raises(UnboundKeyError):
            scope["missing"]

    def test_unbound_attribute_raises_attribute_error(self) -> None:
        scope = ExampleScope(innermost=GroupNode(description="root"))

        with pytest.raises(AttributeError) as exc_info:
            scope.missing

        assert isinstance(exc_info.value.__cause__, UnboundKeyError)
        assert not hasattr(scope, "missing")


class TestCyclicResolution:
    def test_mutual_dependency(self) -> None:
        root = GroupNode(description="root")
        root.declare("a", lambda b: b, kind=BindingKind.LET)
        root.declare("b", lambda a: a, kind=BindingKind.LET)
        scope = ExampleScope(innermost=root)

        with pytest.raises(CyclicResolutionError) as exc_info:
            scope["a"]

        assert exc_info.value.path == ("a", "b", "a")
        assert "'a' -> 'b' -> 'a'" in str(exc_info.value)
        assert scope.memo.state("a") is BindingState.UNRESOLVED

    def test_self_reference_through_scope(self) -> None:
        root = GroupNode(description="root")
        root.declare("a", lambda self: self.a, kind=BindingKind.LET)

        with pytest.raises(CyclicResolutionError):
            ExampleScope(innermost=root)["a"]


class TestAcrossExamples:
    def test_counter_is_recomputed_for_each_example(self) -> None:
        counter = {"value": 0}

        @group("a shared counter")
        class Counter:
            @let
            def count():
                counter["value"] += 1
                return counter["value"]

            @example("memoizes within the example")
            def first(self):
                assert self.count == 1
                assert self.count == 1

            @example("is not memoized across examples")
            def second(count):
                assert count == 2

        report = run(Counter)

        assert [result.outcome for result in report.results] == [Outcome.PASSED, Outcome.PASSED]
        assert counter["value"] == 2

    def test_failure_does_not_leak_into_next_example(self) -> None:
        @group("isolation")
        class Isolation:
            @let
            def items():
                return []

            @example("fails after mutating")
            def mutates(items):
                items.append(1)
                raise RuntimeError("boom")

            @example("starts fresh")
            def fresh(items):
                assert items == []

        report = run(Isolation)

        assert report["isolation fails after mutating"].outcome is Outcome.FAILED
        assert report["isolation starts fresh"].outcome is Outcome.PASSED
