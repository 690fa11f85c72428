"""
Test Suite for the Ordered Collection Engine

Covers position management for both instantiations:
- Append monotonicity
- Insert with two-phase shifting
- Insert-after resolution
- Full reorder (idempotence, mismatch rejection)
- Delete gap tolerance
- Rollback atomicity on failure mid-insert
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from models import Task
from services.errors import InvalidPosition, InvariantViolation, NotFoundError, ReorderMismatch, StoreFailure
from services.ordered_collection import MAX_POSITION, project_collection, task_collection
from services.unit_of_work import unit_of_work


def snapshot(collection, scope_id):
    """(id, position) pairs in list order."""
    return [(m.id, m.position) for m in collection.list(scope_id)]


def seed_tasks(project_id, count):
    return [task_collection.append(project_id, content=f"task {i}").id for i in range(count)]


def assert_unique_positions(collection, scope_id):
    positions = [m.position for m in collection.list(scope_id)]
    assert positions == sorted(positions)
    assert len(positions) == len(set(positions))
    assert all(p >= 0 for p in positions)


class TestAppend:
    """Appending always lands after the current maximum."""

    def test_first_member_gets_position_zero(self, test_project):
        task = task_collection.append(test_project.id, content="first")
        assert task.position == 0

    def test_sequential_appends_are_contiguous(self, test_project):
        ids = seed_tasks(test_project.id, 5)
        assert snapshot(task_collection, test_project.id) == [(task_id, i) for i, task_id in enumerate(ids)]

    def test_project_appends_are_scoped_per_user(self, test_user, other_user):
        mine = [project_collection.append(test_user.id, name=f"p{i}").position for i in range(3)]
        theirs = [project_collection.append(other_user.id, name=f"q{i}").position for i in range(2)]
        assert mine == [0, 1, 2]
        assert theirs == [0, 1]

    def test_append_after_gap_uses_max_plus_one(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        task_collection.delete(ids[2])
        task_collection.delete(ids[0])
        task = task_collection.append(test_project.id, content="late")
        assert task.position == 2

    def test_payload_cannot_set_position(self, test_project):
        with pytest.raises(ValueError):
            task_collection.append(test_project.id, content="x", position=7)

    def test_payload_cannot_set_scope(self, test_project):
        with pytest.raises(ValueError):
            task_collection.append(test_project.id, content="x", project_id=999)


class TestInsertAt:
    """Two-phase shift keeps (scope, position) unique throughout."""

    def test_insert_in_middle_shifts_tail(self, test_project):
        ids = seed_tasks(test_project.id, 4)

        new = task_collection.insert_at(test_project.id, 2, content="new")

        assert new.position == 2
        positions = dict(snapshot(task_collection, test_project.id))
        assert [positions[i] for i in ids] == [0, 1, 3, 4]
        assert [t.id for t in task_collection.list(test_project.id)] == [ids[0], ids[1], new.id, ids[2], ids[3]]

    def test_insert_at_zero_shifts_everything(self, test_project):
        ids = seed_tasks(test_project.id, 3)

        new = task_collection.insert_at(test_project.id, 0, content="head")

        assert snapshot(task_collection, test_project.id) == [
            (new.id, 0), (ids[0], 1), (ids[1], 2), (ids[2], 3),
        ]

    def test_insert_into_empty_scope(self, test_project):
        task = task_collection.insert_at(test_project.id, 0, content="only")
        assert snapshot(task_collection, test_project.id) == [(task.id, 0)]

    def test_insert_past_end_leaves_existing_rows(self, test_project):
        ids = seed_tasks(test_project.id, 2)

        new = task_collection.insert_at(test_project.id, 10, content="far")

        assert snapshot(task_collection, test_project.id) == [(ids[0], 0), (ids[1], 1), (new.id, 10)]

    def test_insert_with_gaps_preserves_relative_order(self, test_project):
        ids = seed_tasks(test_project.id, 5)
        task_collection.delete(ids[1])
        task_collection.delete(ids[3])  # positions now 0, 2, 4

        new = task_collection.insert_at(test_project.id, 2, content="gap")

        assert snapshot(task_collection, test_project.id) == [
            (ids[0], 0), (new.id, 2), (ids[2], 3), (ids[4], 5),
        ]

    def test_repeated_inserts_keep_invariant(self, test_project):
        seed_tasks(test_project.id, 3)
        for target in (1, 0, 4, 2, 2):
            task_collection.insert_at(test_project.id, target, content=f"at {target}")
        assert_unique_positions(task_collection, test_project.id)
        assert task_collection.count(test_project.id) == 8

    def test_insert_does_not_touch_other_scopes(self, test_user):
        first = project_collection.append(test_user.id, name="first")
        second = project_collection.append(test_user.id, name="second")
        seed_tasks(first.id, 3)
        other_ids = seed_tasks(second.id, 3)

        task_collection.insert_at(first.id, 0, content="head")

        assert snapshot(task_collection, second.id) == [(task_id, i) for i, task_id in enumerate(other_ids)]

    def test_projects_use_the_same_algorithm(self, test_user):
        ids = [project_collection.append(test_user.id, name=f"p{i}").id for i in range(4)]

        new = project_collection.insert_at(test_user.id, 1, name="inserted")

        assert snapshot(project_collection, test_user.id) == [
            (ids[0], 0), (new.id, 1), (ids[1], 2), (ids[2], 3), (ids[3], 4),
        ]

    @pytest.mark.parametrize("bad", [-1, "2", 1.5, True, None])
    def test_invalid_target_rejected(self, test_project, bad):
        seed_tasks(test_project.id, 2)
        with pytest.raises(InvalidPosition):
            task_collection.insert_at(test_project.id, bad, content="bad")
        assert task_collection.count(test_project.id) == 2


class TestPositionBounds:
    """Positions stay within [0, MAX_POSITION] so staged values never overflow."""

    def test_target_above_max_position_rejected(self, test_project):
        seed_tasks(test_project.id, 1)

        with pytest.raises(InvalidPosition):
            task_collection.insert_at(test_project.id, 2**62, content="far")
        with pytest.raises(InvalidPosition):
            task_collection.insert_at(test_project.id, MAX_POSITION + 1, content="far")

        assert task_collection.count(test_project.id) == 1

    def test_insert_at_max_position_allowed(self, test_project):
        task = task_collection.insert_at(test_project.id, MAX_POSITION, content="last slot")
        assert task.position == MAX_POSITION

    def test_shift_past_max_position_rejected(self, test_project):
        first = task_collection.append(test_project.id, content="first")
        last = task_collection.insert_at(test_project.id, MAX_POSITION, content="last slot")
        before = snapshot(task_collection, test_project.id)

        with pytest.raises(InvalidPosition):
            task_collection.insert_at(test_project.id, 0, content="head")

        assert snapshot(task_collection, test_project.id) == before == [(first.id, 0), (last.id, MAX_POSITION)]

    def test_append_past_max_position_rejected(self, test_project):
        task_collection.insert_at(test_project.id, MAX_POSITION, content="last slot")

        with pytest.raises(InvalidPosition):
            task_collection.append(test_project.id, content="overflow")

        assert task_collection.count(test_project.id) == 1

    def test_insert_below_far_member_shifts_it_by_one(self, test_project):
        far = task_collection.insert_at(test_project.id, MAX_POSITION - 1, content="far")

        head = task_collection.insert_at(test_project.id, 0, content="head")

        assert snapshot(task_collection, test_project.id) == [(head.id, 0), (far.id, MAX_POSITION)]


class TestResolveInsertionPosition:

    def test_no_anchor_means_append(self, test_project):
        seed_tasks(test_project.id, 2)
        assert task_collection.resolve_insertion_position(test_project.id, None) is None

    def test_anchor_with_successor_targets_successor(self, test_project):
        ids = seed_tasks(test_project.id, 4)
        assert task_collection.resolve_insertion_position(test_project.id, ids[1]) == 2

    def test_anchor_with_gap_targets_successor_position(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        task_collection.delete(ids[1])
        assert task_collection.resolve_insertion_position(test_project.id, ids[0]) == 2

    def test_last_anchor_targets_position_plus_one(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        assert task_collection.resolve_insertion_position(test_project.id, ids[2]) == 3

    def test_unknown_anchor_raises(self, test_project):
        with pytest.raises(NotFoundError):
            task_collection.resolve_insertion_position(test_project.id, 424242)

    def test_anchor_from_other_scope_raises(self, test_user, test_project):
        other_project = project_collection.append(test_user.id, name="other")
        foreign = task_collection.append(other_project.id, content="foreign")
        with pytest.raises(NotFoundError):
            task_collection.resolve_insertion_position(test_project.id, foreign.id)

    def test_insert_after_last_shifts_nothing(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        before = snapshot(task_collection, test_project.id)

        new = task_collection.place(test_project.id, after_member_id=ids[2], content="tail")

        assert new.position == 3
        assert snapshot(task_collection, test_project.id) == before + [(new.id, 3)]

    def test_insert_after_middle_shifts_from_successor(self, test_project):
        ids = seed_tasks(test_project.id, 4)

        new = task_collection.place(test_project.id, after_member_id=ids[1], content="between")

        assert snapshot(task_collection, test_project.id) == [
            (ids[0], 0), (ids[1], 1), (new.id, 2), (ids[2], 3), (ids[3], 4),
        ]

    def test_explicit_position_wins_over_anchor(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        new = task_collection.place(test_project.id, position=0, after_member_id=ids[2], content="x")
        assert new.position == 0


class TestReorder:

    def test_reverse_order(self, test_project):
        ids = seed_tasks(test_project.id, 4)

        task_collection.reorder(test_project.id, list(reversed(ids)))

        assert snapshot(task_collection, test_project.id) == [
            (ids[3], 0), (ids[2], 1), (ids[1], 2), (ids[0], 3),
        ]

    def test_reorder_compacts_gaps(self, test_project):
        ids = seed_tasks(test_project.id, 4)
        task_collection.delete(ids[1])

        task_collection.reorder(test_project.id, [ids[3], ids[0], ids[2]])

        assert snapshot(task_collection, test_project.id) == [(ids[3], 0), (ids[0], 1), (ids[2], 2)]

    def test_reorder_is_idempotent(self, test_project):
        ids = seed_tasks(test_project.id, 5)
        order = [ids[2], ids[4], ids[0], ids[1], ids[3]]

        task_collection.reorder(test_project.id, order)
        first = snapshot(task_collection, test_project.id)
        task_collection.reorder(test_project.id, order)

        assert snapshot(task_collection, test_project.id) == first

    def test_reorder_empty_scope(self, test_project):
        task_collection.reorder(test_project.id, [])
        assert task_collection.list(test_project.id) == []

    def test_missing_member_rejected(self, test_project):
        ids = seed_tasks(test_project.id, 3)
        before = snapshot(task_collection, test_project.id)

        with pytest.raises(ReorderMismatch) as exc_info:
            task_collection.reorder(test_project.id, [ids[2], ids[0]])

        assert exc_info.value.missing == [ids[1]]
        assert snapshot(task_collection, test_project.id) == before

    def test_foreign_member_rejected(self, test_user, test_project):
        ids = seed_tasks(test_project.id, 2)
        other_project = project_collection.append(test_user.id, name="other")
        foreign = task_collection.append(other_project.id, content="foreign")
        before = snapshot(task_collection, test_project.id)

        with pytest.raises(ReorderMismatch) as exc_info:
            task_collection.reorder(test_project.id, [ids[1], ids[0], foreign.id])

        assert exc_info.value.extra == [foreign.id]
        assert snapshot(task_collection, test_project.id) == before
        assert snapshot(task_collection, other_project.id) == [(foreign.id, 0)]

    def test_duplicate_id_rejected(self, test_project):
        ids = seed_tasks(test_project.id, 2)
        before = snapshot(task_collection, test_project.id)

        with pytest.raises(ReorderMismatch) as exc_info:
            task_collection.reorder(test_project.id, [ids[0], ids[1], ids[0]])

        assert exc_info.value.duplicates == [ids[0]]
        assert snapshot(task_collection, test_project.id) == before

    def test_foreign_ids_of_other_types_rejected(self, test_project):
        ids = seed_tasks(test_project.id, 2)
        before = snapshot(task_collection, test_project.id)

        with pytest.raises(ReorderMismatch) as exc_info:
            task_collection.reorder(test_project.id, ids + ["x", 999])

        assert set(exc_info.value.extra) == {"x", 999}
        assert exc_info.value.missing == []
        assert snapshot(task_collection, test_project.id) == before

    def test_reorder_projects(self, test_user):
        ids = [project_collection.append(test_user.id, name=f"p{i}").id for i in range(3)]

        project_collection.reorder(test_user.id, [ids[1], ids[2], ids[0]])

        assert [p.id for p in project_collection.list(test_user.id)] == [ids[1], ids[2], ids[0]]
        assert_unique_positions(project_collection, test_user.id)


class TestDelete:

    def test_delete_middle_leaves_gap(self, test_project):
        ids = seed_tasks(test_project.id, 3)

        task_collection.delete(ids[1])

        assert snapshot(task_collection, test_project.id) == [(ids[0], 0), (ids[2], 2)]
        assert_unique_positions(task_collection, test_project.id)

    def test_delete_unknown_member(self, test_project):
        with pytest.raises(NotFoundError):
            task_collection.delete(98765)

    def test_delete_checks_scope(self, test_user, test_project):
        other_project = project_collection.append(test_user.id, name="other")
        foreign = task_collection.append(other_project.id, content="foreign")

        with pytest.raises(NotFoundError):
            task_collection.delete(foreign.id, scope_id=test_project.id)
        assert task_collection.count(other_project.id) == 1

    def test_deleting_project_removes_its_tasks(self, test_user, test_project, db_session):
        project_id = test_project.id
        ids = seed_tasks(project_id, 3)

        project_collection.delete(project_id)

        remaining = db_session.execute(select(Task.id).where(Task.id.in_(ids))).scalars().all()
        assert remaining == []
        assert task_collection.count(project_id) == 0


class TestAtomicity:
    """Failures inside an operation leave positions exactly as they were."""

    def test_failed_insert_after_shift_rolls_back(self, test_project, mocker):
        ids = seed_tasks(test_project.id, 4)
        before = snapshot(task_collection, test_project.id)
        mocker.patch.object(
            task_collection,
            '_insert_member',
            side_effect=OperationalError("INSERT INTO tasks", {}, Exception("disk I/O error")),
        )

        with pytest.raises(StoreFailure):
            task_collection.insert_at(test_project.id, 1, content="boom")

        assert snapshot(task_collection, test_project.id) == before
        assert [t.id for t in task_collection.list(test_project.id)] == ids

    def test_interrupted_insert_rolls_back(self, test_project, mocker):
        class Aborted(BaseException):
            pass

        seed_tasks(test_project.id, 3)
        before = snapshot(task_collection, test_project.id)
        mocker.patch.object(task_collection, '_insert_member', side_effect=Aborted())

        with pytest.raises(Aborted):
            task_collection.insert_at(test_project.id, 0, content="abort")

        assert snapshot(task_collection, test_project.id) == before

    def test_failed_reorder_update_rolls_back(self, test_project, mocker):
        ids = seed_tasks(test_project.id, 3)
        before = snapshot(task_collection, test_project.id)
        mocker.patch.object(
            task_collection,
            '_check_membership',
            side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
        )

        with pytest.raises(StoreFailure):
            task_collection.reorder(test_project.id, list(reversed(ids)))

        assert snapshot(task_collection, test_project.id) == before

    def test_duplicate_position_written_outside_engine_is_invariant_violation(self, test_project):
        seed_tasks(test_project.id, 1)

        with pytest.raises(InvariantViolation):
            with unit_of_work() as session:
                session.add(Task(project_id=test_project.id, content="dup", position=0))

        assert task_collection.count(test_project.id) == 1
