"""Tests for Computed signals."""

import pytest

from sigx import Computed, SignalKind, SignalState, computed, signal


class TestComputed:
    def test_derives_value(self):
        a = signal(1)
        b = computed(lambda: a() * 2)
        assert b() == 2
        a.set(2)
        assert b() == 4

    def test_kind_and_initial_state(self):
        c = computed(lambda: 1)
        assert c.kind is SignalKind.COMPUTED
        assert c.state is SignalState.INACTIVE

    def test_evaluates_once_at_construction(self):
        call_count = 0
        a = signal(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return a() * 2

        Computed(fn)
        assert call_count == 1

    def test_no_dependencies(self):
        constant = computed(lambda: 42)
        assert constant() == 42
        log = []
        unsubscribe = constant.subscribe(log.append)
        assert log == [42]
        assert constant() == 42
        unsubscribe()
        assert constant() == 42

    def test_chained_computed(self):
        o = signal(3)
        doubled = computed(lambda: o() * 2)
        quadrupled = computed(lambda: doubled() * 2)
        assert quadrupled() == 12
        o.set(5)
        assert quadrupled() == 20

    def test_records_only_direct_dependencies(self):
        """A nested derived read registers the derived signal, not its inputs."""
        a = signal(1)
        b = computed(lambda: a() + 1)
        c = computed(lambda: b() * 10)
        assert c.dependencies == frozenset({b})
        assert b.dependencies == frozenset({a})

    def test_decorator_with_options(self):
        o = signal(1)

        @computed(equal=lambda x, y: True)
        def frozen():
            return o()

        log = []
        frozen.subscribe(log.append)
        o.set(2)
        assert log == [1]


class TestInactive:
    def test_recomputes_on_every_read(self):
        call_count = 0
        a = signal(1)

        def fn():
            nonlocal call_count
            call_count += 1
            return a()

        c = Computed(fn)
        c()
        c()
        assert call_count == 3  # construction + two reads

    def test_writes_do_not_recompute(self):
        call_count = 0
        a = signal(1)

        def fn():
            nonlocal call_count
            call_count += 1
            return a() * 2

        b = Computed(fn)
        assert b() == 2
        count = call_count
        a.set(1)
        a.set(3)
        assert call_count == count
        assert b() == 6

    def test_does_not_subscribe_upstream(self):
        a = signal(1)
        b = computed(lambda: a() * 2)
        b()
        assert a.listener_count == 0


class TestActive:
    def test_subscribe_delivers_current_value(self):
        a = signal(1)
        b = signal(2)
        total = computed(lambda: a() + b())
        log = []
        total.subscribe(log.append)
        assert log == [3]
        assert total.state is SignalState.ACTIVE

    def test_pushes_changes(self):
        a = signal(1)
        b = signal(2)
        total = computed(lambda: a() + b())
        log = []
        total.subscribe(log.append)
        a.set(3)
        b.set(4)
        assert log == [3, 5, 7]
        assert total() == 7

    def test_second_listener_gets_no_delivery(self):
        a = signal(1)
        c = computed(lambda: a())
        first, second = [], []
        c.subscribe(first.append)
        c.subscribe(second.append)
        assert first == [1]
        assert second == []
        a.set(2)
        assert first == [1, 2]
        assert second == [2]

    def test_reads_use_cache(self):
        call_count = 0
        a = signal(1)
        b = signal(2)

        def fn():
            nonlocal call_count
            call_count += 1
            return a() + b()

        total = Computed(fn)
        total.subscribe(lambda v: None)
        count = call_count
        assert total() == 3
        assert total() == 3
        assert call_count == count

    def test_equal_dependency_writes_do_not_recompute(self):
        call_count = 0
        a = signal(1)
        b = signal(2)

        def fn():
            nonlocal call_count
            call_count += 1
            return a() + b()

        total = Computed(fn)
        total.subscribe(lambda v: None)
        count = call_count
        a.set(1)
        b.set(2)
        assert call_count == count
        a.set(4)
        assert call_count == count + 1
        assert total() == 6

    def test_notifies_only_on_value_change(self):
        a = signal(1)
        parity = computed(lambda: a() % 2)
        log = []
        parity.subscribe(log.append)
        a.set(3)
        assert log == [1]
        a.set(4)
        assert log == [1, 0]

    def test_custom_equality(self):
        a = signal(1)
        b = signal(2)
        total = computed(lambda: a() + b(), equal=lambda x, y: abs(x - y) <= 2)
        log = []
        total.subscribe(log.append)
        a.set(2)
        b.set(3)
        assert total() == 3
        a.set(5)
        assert total() == 8
        assert log == [3, 8]

    def test_nested_computed_push(self):
        a = signal(1)
        b = signal(2)
        total = computed(lambda: a() + b())
        double = computed(lambda: total() * 2)
        log = []
        double.subscribe(log.append)
        assert log == [6]
        a.set(3)
        b.set(4)
        assert log == [6, 10, 14]
        assert total.state is SignalState.ACTIVE

    def test_cache_matches_fresh_recompute(self):
        a = signal(2)
        b = signal(5)
        c = computed(lambda: a() * b())
        c.subscribe(lambda v: None)
        for x, y in [(3, 5), (3, 1), (0, 9)]:
            a.set(x)
            b.set(y)
            assert c() == x * y

    def test_listener_sees_new_value(self):
        a = signal(1)
        c = computed(lambda: a() + 1)
        seen = []
        c.subscribe(lambda v: seen.append((v, c())))
        a.set(5)
        assert seen == [(2, 2), (6, 6)]


class TestDeactivation:
    def test_unsubscribe_releases_dependencies(self):
        a = signal(1)
        b = signal(2)
        before = (a.listener_count, b.listener_count)
        total = computed(lambda: a() + b())
        log = []
        unsubscribe = total.subscribe(log.append)
        assert (a.listener_count, b.listener_count) == (1, 1)

        unsubscribe()
        assert (a.listener_count, b.listener_count) == before
        assert total.state is SignalState.INACTIVE

        a.set(3)
        b.set(4)
        assert log == [3]
        assert total() == 7  # lazily fresh again

    def test_stays_active_until_last_listener_leaves(self):
        a = signal(1)
        c = computed(lambda: a())
        unsub_1 = c.subscribe(lambda v: None)
        unsub_2 = c.subscribe(lambda v: None)
        unsub_1()
        assert c.state is SignalState.ACTIVE
        assert a.listener_count == 1
        unsub_2()
        assert c.state is SignalState.INACTIVE
        assert a.listener_count == 0

    def test_nested_release(self):
        a = signal(1)
        inner = computed(lambda: a() + 1)
        outer = computed(lambda: inner() * 2)
        unsubscribe = outer.subscribe(lambda v: None)
        assert inner.state is SignalState.ACTIVE
        unsubscribe()
        assert inner.state is SignalState.INACTIVE
        assert a.listener_count == 0

    def test_reactivation(self):
        a = signal(1)
        c = computed(lambda: a() * 10)
        unsubscribe = c.subscribe(lambda v: None)
        unsubscribe()
        a.set(2)
        log = []
        c.subscribe(log.append)
        assert log == [20]
        a.set(3)
        assert log == [20, 30]


class TestDynamicDependencies:
    def test_switching_branches_moves_subscriptions(self):
        flag = signal(True)
        a = signal(1)
        b = signal(2)
        c = computed(lambda: a() if flag() else b())
        log = []
        c.subscribe(log.append)
        assert c.dependencies == frozenset({flag, a})
        assert b.listener_count == 0

        flag.set(False)
        assert log == [1, 2]
        assert c.dependencies == frozenset({flag, b})
        assert a.listener_count == 0
        assert b.listener_count == 1

        a.set(100)  # no longer a dependency
        assert log == [1, 2]
        b.set(3)
        assert log == [1, 2, 3]

    def test_activation_rescans_dependencies(self):
        flag = signal(True)
        a = signal(1)
        b = signal(2)
        c = computed(lambda: a() if flag() else b())
        flag.set(False)
        log = []
        c.subscribe(log.append)
        assert log == [2]
        assert c.dependencies == frozenset({flag, b})


class TestErrors:
    def test_construction_swallows_scan_failure(self):
        """A computation that raises during the dependency scan does not
        fail construction; the dependency set holds only the reads made
        before the error."""
        a = signal(1)
        b = signal(2)

        def fn():
            a()
            raise RuntimeError("midway")
            return b()

        c = Computed(fn)
        assert c.dependencies == frozenset({a})
        with pytest.raises(RuntimeError, match="midway"):
            c()

    def test_scan_failure_is_logged(self, caplog):
        with caplog.at_level("WARNING", logger="sigx.tracking"):
            computed(lambda: 1 / 0)
        assert "Dependency scan" in caplog.text

    def test_active_recompute_error_propagates(self):
        a = signal(1)

        def fn():
            if a() < 0:
                raise ValueError("negative")
            return a()

        c = computed(fn)
        log = []
        c.subscribe(log.append)
        with pytest.raises(ValueError, match="negative"):
            a.set(-1)
        # partial propagation: a committed, c kept its last value
        assert a() == -1
        assert c() == 1
        assert log == [1]

    def test_first_listener_error_rolls_back_activation(self):
        a = signal(1)
        c = computed(lambda: a())

        def boom(v):
            raise ValueError("boom")

        with pytest.raises(ValueError):
            c.subscribe(boom)
        assert c.listener_count == 0
        assert c.state is SignalState.INACTIVE
        assert a.listener_count == 0


class TestRepr:
    def test_repr_shows_name_and_state(self):
        def doubled():
            return 2

        c = Computed(doubled)
        assert repr(c) == "Computed(doubled, inactive, value=2)"
