"""
Ordered Collection Engine - position management for scoped, ordered members

Keeps integer ``position`` values of a model distinct and non-negative inside
each scope (projects per user, tasks per project) while a unique constraint on
(scope, position) is enforced eagerly by the store.

Key Features:
- Append at end (max + 1) inside one transaction
- Insert at a position with a two-phase negative-range shift
- Full reorder from an explicit permutation, staged through negative positions
- Delete without renumbering (gaps are expected)
- "Insert after member X" resolution
"""

import logging
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from models import db, Project, Task
from services.errors import InvalidPosition, NotFoundError, ReorderMismatch
from services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

M = TypeVar("M")

# Upper bound for stored positions. Staged values (-position - K) then stay
# well inside a 64-bit INTEGER.
MAX_POSITION = 2**31 - 1


class OrderedCollection(Generic[M]):
    """
    Generic ordered collection over a mapped model.

    Args:
        model: Mapped class with ``id`` and ``position`` columns
        scope_attr: Name of the column partitioning members into scopes
        label: Human-readable member name used in messages and logs
    """

    _protected_fields = ("id", "position")

    def __init__(self, model: Type[M], scope_attr: str, label: Optional[str] = None):
        self.model = model
        self.scope_attr = scope_attr
        self.label = label or model.__name__

    @property
    def session(self) -> Session:
        return db.session()

    @property
    def _scope_column(self):
        return getattr(self.model, self.scope_attr)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, scope_id: Any) -> List[M]:
        """Members of ``scope_id`` by ascending position (id breaks corrupt ties)."""
        stmt = (
            select(self.model)
            .where(self._scope_column == scope_id)
            .order_by(self.model.position.asc(), self.model.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get(self, member_id: Any, scope_id: Any = None) -> M:
        """
        Fetch one member.

        Raises:
            NotFoundError: no such member, or it belongs to another scope
        """
        member = self.session.get(self.model, member_id)
        if member is None or (scope_id is not None and getattr(member, self.scope_attr) != scope_id):
            raise NotFoundError(f"{self.label} {member_id} not found")
        return member

    def max_position(self, scope_id: Any) -> int:
        """Highest position in the scope, -1 when the scope is empty."""
        stmt = select(func.max(self.model.position)).where(self._scope_column == scope_id)
        max_position = self.session.execute(stmt).scalar()
        return -1 if max_position is None else max_position

    def count(self, scope_id: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(self._scope_column == scope_id)
        return self.session.execute(stmt).scalar() or 0

    def member_ids(self, scope_id: Any) -> List[Any]:
        stmt = select(self.model.id).where(self._scope_column == scope_id)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, scope_id: Any, **payload) -> M:
        """
        Add a member after every existing one.

        The max read and the insert share one transaction so two appends
        cannot compute the same next position.

        Raises:
            InvalidPosition: the last member already sits at MAX_POSITION
        """
        self._check_payload(payload)
        with unit_of_work() as session:
            position = self._check_position(self.max_position(scope_id) + 1)
            member = self._build(scope_id, position, payload)
            self._insert_member(session, member)

        logger.info(f"[ORDERING] Appended {self.label} {member.id} at position {position} in scope {scope_id}")
        return member

    def insert_at(self, scope_id: Any, target_position: int, **payload) -> M:
        """
        Insert a member at ``target_position``, pushing members at or after it
        one slot later while keeping their relative order.

        A single ``position = position + 1`` update is unsafe under an eagerly
        checked unique constraint (row 3 -> 4 collides with the not yet moved
        row 4), so the shift is staged:

        1. rows with ``position >= target`` move to ``-position - K`` where
           ``K = max + 1``; the negative range is disjoint from every
           untouched row and from itself.
        2. rows with ``position < 0`` move to ``-position - (K - 1)``, which is
           ``original + 1``.
        3. the new member is inserted at ``target``.

        Raises:
            InvalidPosition: target is not an integer in [0, MAX_POSITION],
                or the shift would push the last member past MAX_POSITION
        """
        target_position = self._check_position(target_position)
        self._check_payload(payload)

        with unit_of_work() as session:
            current_max = self.max_position(scope_id)
            if current_max >= target_position:
                self._check_position(current_max + 1)
                self._shift_from(session, scope_id, target_position, current_max)
            member = self._build(scope_id, target_position, payload)
            self._insert_member(session, member)

        logger.info(
            f"[ORDERING] Inserted {self.label} {member.id} at position {target_position} in scope {scope_id}"
        )
        return member

    def resolve_insertion_position(self, scope_id: Any, after_member_id: Any = None) -> Optional[int]:
        """
        Translate "insert after member X" into a target position.

        Returns:
            None when no anchor is given (append instead), the successor's
            position when the anchor has one, otherwise anchor position + 1

        Raises:
            NotFoundError: the anchor is not a member of the scope
        """
        if after_member_id is None:
            return None

        anchor = self.get(after_member_id, scope_id=scope_id)
        stmt = select(func.min(self.model.position)).where(
            self._scope_column == scope_id,
            self.model.position > anchor.position,
        )
        successor_position = self.session.execute(stmt).scalar()
        if successor_position is None:
            return anchor.position + 1
        return successor_position

    def place(self, scope_id: Any, position: Optional[int] = None, after_member_id: Any = None, **payload) -> M:
        """
        Create a member at an explicit position, after an anchor, or at the end.

        An explicit position wins over an anchor.
        """
        if position is None:
            position = self.resolve_insertion_position(scope_id, after_member_id)
        if position is None:
            return self.append(scope_id, **payload)
        return self.insert_at(scope_id, position, **payload)

    def reorder(self, scope_id: Any, ordered_member_ids: Sequence[Any]) -> None:
        """
        Assign position ``i`` to ``ordered_member_ids[i]``.

        The list must name every member of the scope exactly once. Members are
        first staged to ``-position - 1`` so the per-member updates never meet
        an occupied slot.

        Raises:
            ReorderMismatch: missing, foreign or duplicate ids (nothing written)
        """
        ordered_member_ids = list(ordered_member_ids)
        with unit_of_work() as session:
            self._check_membership(scope_id, ordered_member_ids)

            session.execute(
                update(self.model)
                .where(self._scope_column == scope_id)
                .values(position=-self.model.position - 1)
                .execution_options(synchronize_session=False)
            )
            for index, member_id in enumerate(ordered_member_ids):
                session.execute(
                    update(self.model)
                    .where(self.model.id == member_id, self._scope_column == scope_id)
                    .values(position=index)
                    .execution_options(synchronize_session=False)
                )
            session.expire_all()

        logger.info(f"[REORDER] Reordered {len(ordered_member_ids)} {self.label} members in scope {scope_id}")

    def delete(self, member_id: Any, scope_id: Any = None) -> None:
        """Remove a member. Remaining positions are left as they are."""
        with unit_of_work() as session:
            member = self.get(member_id, scope_id=scope_id)
            position = member.position
            session.delete(member)

        logger.info(f"[ORDERING] Deleted {self.label} {member_id} (position {position} left as a gap)")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _shift_from(self, session: Session, scope_id: Any, target_position: int, current_max: int) -> None:
        offset = current_max + 1

        session.execute(
            update(self.model)
            .where(self._scope_column == scope_id, self.model.position >= target_position)
            .values(position=-self.model.position - offset)
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"[ORDERING] Staged {self.label} rows >= {target_position} in scope {scope_id} below zero")

        session.execute(
            update(self.model)
            .where(self._scope_column == scope_id, self.model.position < 0)
            .values(position=-self.model.position - (offset - 1))
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"[ORDERING] Restored staged {self.label} rows in scope {scope_id} with +1 offset")

        # Bulk updates bypass the identity map.
        session.expire_all()

    def _insert_member(self, session: Session, member: M) -> None:
        session.add(member)
        session.flush()

    def _build(self, scope_id: Any, position: int, payload: dict) -> M:
        fields = dict(payload)
        fields[self.scope_attr] = scope_id
        fields["position"] = position
        return self.model(**fields)

    def _check_payload(self, payload: dict) -> None:
        reserved = [key for key in (*self._protected_fields, self.scope_attr) if key in payload]
        if reserved:
            raise ValueError(f"{self.label} payload may not set {', '.join(reserved)}")

    def _check_position(self, position: Any) -> int:
        if isinstance(position, bool) or not isinstance(position, int) or position < 0:
            raise InvalidPosition(f"Position must be a non-negative integer, got {position!r}")
        if position > MAX_POSITION:
            raise InvalidPosition(f"Position must not exceed {MAX_POSITION}, got {position}")
        return position

    def _check_membership(self, scope_id: Any, ordered_member_ids: List[Any]) -> None:
        current = set(self.member_ids(scope_id))
        requested = set(ordered_member_ids)
        duplicates = {member_id for member_id in requested if ordered_member_ids.count(member_id) > 1}
        missing = current - requested
        extra = requested - current

        if missing or extra or duplicates:
            error = ReorderMismatch(
                f"{self.label} ids do not match the scope's members",
                missing=missing,
                extra=extra,
                duplicates=duplicates,
            )
            logger.warning(
                f"[REORDER] Rejected {self.label} reorder in scope {scope_id}: "
                f"missing={error.missing} extra={error.extra} duplicates={error.duplicates}"
            )
            raise error


project_collection: OrderedCollection[Project] = OrderedCollection(Project, "user_id", label="Project")
task_collection: OrderedCollection[Task] = OrderedCollection(Task, "project_id", label="Task")
