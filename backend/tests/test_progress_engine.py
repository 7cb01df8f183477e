"""Tests for the pure progress computation."""

import pytest

from training_portal.services.progress_engine import (
    AttemptRecord,
    MainModuleRecord,
    ModuleRecord,
    ModuleStatus,
    build_progress,
    gate_for,
    mean_half_up,
    round_half_up,
)


LOCKED = ModuleStatus.LOCKED
PENDING = ModuleStatus.PENDING
PASSED = ModuleStatus.PASSED
FAILED = ModuleStatus.FAILED


def statuses(items):
    return [item.status for item in items]


def grouped_curriculum():
    """Two main modules: [1, 2, 3] and [4, 5]."""
    main_modules = [
        MainModuleRecord(id=10, order_index=1, title="Basics"),
        MainModuleRecord(id=20, order_index=2, title="Advanced"),
    ]
    modules = [
        ModuleRecord(id=1, order=1, title="A", main_module_id=10, order_within_main=1),
        ModuleRecord(id=2, order=2, title="B", main_module_id=10, order_within_main=2),
        ModuleRecord(id=3, order=3, title="C", main_module_id=10, order_within_main=3),
        ModuleRecord(id=4, order=4, title="D", main_module_id=20, order_within_main=1),
        ModuleRecord(id=5, order=5, title="E", main_module_id=20, order_within_main=2),
    ]
    return main_modules, modules


def passed(module_id, score=80, attempt_no=1):
    return AttemptRecord(module_id=module_id, attempt_no=attempt_no, score=score, passed=True)


def failed(module_id, score=40, attempt_no=1):
    return AttemptRecord(module_id=module_id, attempt_no=attempt_no, score=score, passed=False)


class TestRounding:

    @pytest.mark.parametrize("numerator,denominator,expected", [
        (300, 7, 43),
        (80, 3, 27),
        (1, 2, 1),
        (5, 2, 3),
        (100, 8, 13),
        (0, 5, 0),
        (100, 1, 100),
    ])
    def test_round_half_up(self, numerator, denominator, expected):
        assert round_half_up(numerator, denominator) == expected

    def test_mean_of_nothing_is_none(self):
        assert mean_half_up([]) is None

    def test_mean_rounds_half_up(self):
        assert mean_half_up([70, 71]) == 71
        assert mean_half_up([80, 0, 0]) == 27


class TestSequentialUnlock:

    def test_initial_state(self):
        main_modules, modules = grouped_curriculum()
        snapshot = build_progress(main_modules, modules, [])

        first, second = snapshot.main_modules
        assert statuses(first.sub_modules) == [PENDING, LOCKED, LOCKED]
        assert statuses(second.sub_modules) == [LOCKED, LOCKED]
        assert first.next_open_sub_module_id == 1
        assert first.next_open_sub_module_title == "A"
        assert second.next_open_sub_module_id is None

    def test_passing_first_opens_second(self):
        main_modules, modules = grouped_curriculum()
        snapshot = build_progress(main_modules, modules, [passed(1, score=75)])

        first = snapshot.main_modules[0]
        assert statuses(first.sub_modules) == [PASSED, PENDING, LOCKED]
        assert first.next_open_sub_module_id == 2
        assert not first.completed

    def test_fail_out_keeps_the_rest_locked(self):
        main_modules, modules = grouped_curriculum()
        attempts = [failed(1, score=50, attempt_no=1), failed(1, score=60, attempt_no=2)]
        snapshot = build_progress(main_modules, modules, attempts)

        first = snapshot.main_modules[0]
        assert statuses(first.sub_modules) == [FAILED, LOCKED, LOCKED]
        assert first.sub_modules[0].attempts_used == 2
        assert first.sub_modules[0].last_score == 60
        assert first.next_open_sub_module_id is None
        assert statuses(snapshot.main_modules[1].sub_modules) == [LOCKED, LOCKED]

    def test_one_failed_attempt_is_still_pending(self):
        main_modules, modules = grouped_curriculum()
        snapshot = build_progress(main_modules, modules, [failed(1)])

        item = snapshot.find_module(1)
        assert item.status == PENDING
        assert item.attempts_used == 1

    def test_main_module_completion_cascade(self):
        main_modules, modules = grouped_curriculum()
        before = build_progress(main_modules, modules, [passed(1), passed(2)])
        assert before.find_module(4).status == LOCKED

        after = build_progress(main_modules, modules, [passed(1), passed(2), passed(3)])
        assert after.main_modules[0].completed
        assert after.find_module(4).status == PENDING
        assert after.main_modules[1].next_open_sub_module_id == 4

    def test_stale_pass_behind_closed_gate_is_locked(self):
        # Module 3 passed earlier, then module 2's attempts were reset
        main_modules, modules = grouped_curriculum()
        snapshot = build_progress(main_modules, modules, [passed(1), passed(3)])

        assert statuses(snapshot.main_modules[0].sub_modules) == [PASSED, PENDING, LOCKED]
        assert snapshot.find_module(3).last_score == 80


class TestMonotonicGating:

    @pytest.mark.parametrize("attempts", [
        [],
        [passed(1)],
        [passed(1), failed(2)],
        [passed(1), failed(2), failed(2, attempt_no=2)],
        [passed(1), passed(2), passed(3), passed(4)],
        [passed(2), passed(3), passed(4), passed(5)],
        [failed(1), passed(2), passed(4)],
    ])
    def test_nothing_after_a_non_passed_module_is_open(self, attempts):
        main_modules, modules = grouped_curriculum()
        snapshot = build_progress(main_modules, modules, attempts)

        flat = [item for node in snapshot.main_modules for item in node.sub_modules]
        closed = False
        for item in flat:
            if closed:
                assert item.status == LOCKED
            if item.status != PASSED:
                closed = True

    def test_determinism(self):
        main_modules, modules = grouped_curriculum()
        attempts = [passed(1), failed(2), passed(2, attempt_no=2)]

        first = build_progress(main_modules, modules, attempts)
        second = build_progress(list(reversed(main_modules)), list(reversed(modules)), list(reversed(attempts)))

        assert first == second


class TestAverages:

    def test_dashboard_and_certificate_averages_diverge(self):
        main_modules = [MainModuleRecord(id=1, order_index=1, title="Only")]
        modules = [
            ModuleRecord(id=1, order=1, title="A", main_module_id=1, order_within_main=1),
            ModuleRecord(id=2, order=2, title="B", main_module_id=1, order_within_main=2),
            ModuleRecord(id=3, order=3, title="C", main_module_id=1, order_within_main=3),
        ]
        node = build_progress(main_modules, modules, [passed(1, score=80)]).main_modules[0]

        assert node.dashboard_average == 80
        assert node.average_for_certificate == 27

    def test_dashboard_average_absent_without_attempts(self):
        main_modules, modules = grouped_curriculum()
        node = build_progress(main_modules, modules, []).main_modules[0]

        assert node.dashboard_average is None
        assert node.average_for_certificate == 0

    def test_last_score_follows_attempt_number(self):
        main_modules, modules = grouped_curriculum()
        attempts = [failed(1, score=65, attempt_no=2), failed(1, score=30, attempt_no=1)]
        item = build_progress(main_modules, modules, attempts).find_module(1)

        assert item.last_score == 65
        assert item.best_score == 65

    def test_best_score_differs_from_last(self):
        main_modules, modules = grouped_curriculum()
        attempts = [failed(1, score=65, attempt_no=1), failed(1, score=40, attempt_no=2)]
        item = build_progress(main_modules, modules, attempts).find_module(1)

        assert item.last_score == 40
        assert item.best_score == 65


class TestGroupedEdges:

    def test_empty_main_module_never_completes_and_does_not_block(self):
        main_modules = [
            MainModuleRecord(id=1, order_index=1, title="Empty"),
            MainModuleRecord(id=2, order_index=2, title="Filled"),
        ]
        modules = [ModuleRecord(id=7, order=1, title="A", main_module_id=2, order_within_main=1)]
        snapshot = build_progress(main_modules, modules, [])

        empty, filled = snapshot.main_modules
        assert not empty.completed
        assert empty.sub_modules == []
        assert filled.sub_modules[0].status == PENDING

    def test_ordering_ties_break_by_id(self):
        main_modules = [MainModuleRecord(id=1, order_index=1, title="Only")]
        modules = [
            ModuleRecord(id=9, order=1, title="Later id", main_module_id=1, order_within_main=1),
            ModuleRecord(id=4, order=2, title="Earlier id", main_module_id=1, order_within_main=1),
        ]
        node = build_progress(main_modules, modules, []).main_modules[0]

        assert [item.id for item in node.sub_modules] == [4, 9]

    def test_main_modules_follow_order_index(self):
        main_modules = [
            MainModuleRecord(id=1, order_index=2, title="Second"),
            MainModuleRecord(id=2, order_index=1, title="First"),
        ]
        snapshot = build_progress(main_modules, [], [])

        assert [node.main_module_id for node in snapshot.main_modules] == [2, 1]

    def test_unassigned_module_is_outside_every_sequence(self):
        main_modules, modules = grouped_curriculum()
        modules.append(ModuleRecord(id=99, order=6, title="Loose"))
        snapshot = build_progress(main_modules, modules, [])

        assert snapshot.find_module(99) is None
        assert gate_for(snapshot, 99).reason == "Module not in sequence"
        assert gate_for(snapshot, 12345).reason == "Module not found"


class TestLegacyMode:

    def test_flat_sequence_by_global_order(self):
        modules = [
            ModuleRecord(id=1, order=2, title="Second"),
            ModuleRecord(id=2, order=1, title="First"),
            ModuleRecord(id=3, order=3, title="Third"),
        ]
        snapshot = build_progress([], modules, [passed(2)])

        assert snapshot.legacy
        assert snapshot.mode == "legacy"
        assert [item.id for item in snapshot.modules] == [2, 1, 3]
        assert statuses(snapshot.modules) == [PASSED, PENDING, LOCKED]

    def test_assignment_fields_ignored_without_main_modules(self):
        modules = [ModuleRecord(id=1, order=1, title="A", main_module_id=5, order_within_main=1)]
        snapshot = build_progress([], modules, [])

        assert snapshot.modules[0].status == PENDING
        assert gate_for(snapshot, 1).allowed


class TestGate:

    @pytest.mark.parametrize("attempts,module_id,reason", [
        ([], 2, "Module is locked"),
        ([passed(1)], 1, "Already passed"),
        ([failed(1), failed(1, attempt_no=2)], 1, "No attempts left"),
    ])
    def test_denials(self, attempts, module_id, reason):
        main_modules, modules = grouped_curriculum()
        gate = gate_for(build_progress(main_modules, modules, attempts), module_id)

        assert not gate.allowed
        assert gate.reason == reason

    def test_pending_is_allowed(self):
        main_modules, modules = grouped_curriculum()
        gate = gate_for(build_progress(main_modules, modules, [failed(1)]), 1)

        assert gate.allowed
        assert gate.reason is None
