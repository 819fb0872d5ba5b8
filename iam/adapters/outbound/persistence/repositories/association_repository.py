# iam/adapters/outbound/persistence/repositories/association_repository.py

"""
Repository for pure join tables.

One generic class serves the three association tables. Every read takes a
collection of ids and issues a single ``IN`` query, so callers can walk the
relationship graph one hop per query.
"""

import logging
from typing import Iterable, List, Set, Tuple

from sqlalchemy import Table, delete, distinct, func, insert, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.models import user_groups, group_roles, role_permissions
from iam.adapters.outbound.persistence.repositories.base_repository import is_unique_violation
from iam.application.ports.outbound import IAssociationRepository
from iam.domain.exceptions import (
    DatabaseOperationException,
    ResourceAlreadyExistsException
)

# Dialects that support INSERT ... ON CONFLICT DO NOTHING ... RETURNING
_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AsyncAssociationRepository(IAssociationRepository):
    """
    Async repository for one (left, right) join table.

    Attributes:
        table: SQLAlchemy table
        left: Column holding the owner side (e.g. ``group_id`` in group_roles)
        right: Column holding the assigned side (e.g. ``role_id``)
    """

    def __init__(self, table: Table, left_column: str, right_column: str):
        self.table = table
        self.left = table.c[left_column]
        self.right = table.c[right_column]
        self.logger = logging.getLogger(f"{__name__}.{table.name}")

    ########################################################################
    # Reads
    ########################################################################

    async def _scalars(self, db: AsyncSession, query, what: str) -> List[int]:
        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading {what} from {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error reading {self.table.name}",
                original_error=e
            )

    async def right_ids_for(self, db: AsyncSession, left_ids: Iterable[int]) -> List[int]:
        """Distinct right ids joined to any of ``left_ids``."""
        left_ids = list(left_ids)
        if not left_ids:
            return []
        query = (
            select(distinct(self.right))
            .where(self.left.in_(left_ids))
            .order_by(self.right)
        )
        return await self._scalars(db, query, self.right.name)

    async def left_ids_for(self, db: AsyncSession, right_ids: Iterable[int]) -> List[int]:
        """Distinct left ids joined to any of ``right_ids``."""
        right_ids = list(right_ids)
        if not right_ids:
            return []
        query = (
            select(distinct(self.left))
            .where(self.right.in_(right_ids))
            .order_by(self.left)
        )
        return await self._scalars(db, query, self.left.name)

    async def pairs_for_left(self, db: AsyncSession, left_ids: Iterable[int]) -> List[Tuple[int, int]]:
        """All (left, right) pairs whose left side is in ``left_ids``."""
        left_ids = list(left_ids)
        if not left_ids:
            return []
        try:
            query = (
                select(self.left, self.right)
                .where(self.left.in_(left_ids))
                .order_by(self.left, self.right)
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading pairs from {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error reading {self.table.name}",
                original_error=e
            )

    async def pairs_for_right(self, db: AsyncSession, right_ids: Iterable[int]) -> List[Tuple[int, int]]:
        """All (left, right) pairs whose right side is in ``right_ids``."""
        right_ids = list(right_ids)
        if not right_ids:
            return []
        try:
            query = (
                select(self.left, self.right)
                .where(self.right.in_(right_ids))
                .order_by(self.right, self.left)
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading pairs from {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error reading {self.table.name}",
                original_error=e
            )

    async def existing_right_ids(self, db: AsyncSession, left_id: int, right_ids: Iterable[int]) -> Set[int]:
        """The subset of ``right_ids`` already joined to ``left_id``."""
        right_ids = list(right_ids)
        if not right_ids:
            return set()
        query = select(self.right).where(self.left == left_id, self.right.in_(right_ids))
        return set(await self._scalars(db, query, self.right.name))

    async def count_for_left(self, db: AsyncSession, left_id: int) -> int:
        query = select(func.count()).select_from(self.table).where(self.left == left_id)
        return (await self._scalars(db, query, "count"))[0]

    async def count_for_right(self, db: AsyncSession, right_id: int) -> int:
        query = select(func.count()).select_from(self.table).where(self.right == right_id)
        return (await self._scalars(db, query, "count"))[0]

    async def count_by_left(self, db: AsyncSession) -> List[Tuple[int, int]]:
        """(left id, number of rows) for every left id present in the table."""
        try:
            query = (
                select(self.left, func.count())
                .group_by(self.left)
                .order_by(self.left)
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting rows of {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error counting {self.table.name}",
                original_error=e
            )

    async def count_by_right(self, db: AsyncSession) -> List[Tuple[int, int]]:
        """(right id, number of rows) for every right id present in the table."""
        try:
            query = (
                select(self.right, func.count())
                .group_by(self.right)
                .order_by(func.count().desc(), self.right)
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting rows of {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error counting {self.table.name}",
                original_error=e
            )

    ########################################################################
    # Writes
    ########################################################################

    async def add_pairs(self, db: AsyncSession, left_id: int, right_ids: Iterable[int]) -> Set[int]:
        """
        Insert (left_id, right_id) rows, ignoring pairs that already exist.

        Args:
            db: Async database session
            left_id: Owner side id
            right_ids: Ids to attach

        Returns:
            The right ids whose rows were actually inserted by this call.
            A missing id means another transaction inserted the pair first.

        Raises:
            ResourceAlreadyExistsException: On stores without ignore-conflict
                support, when a concurrent insert wins the race
            DatabaseOperationException: If another database error occurs
        """
        right_ids = list(right_ids)
        if not right_ids:
            return set()

        rows = [{self.left.name: left_id, self.right.name: right_id} for right_id in right_ids]
        dialect = db.get_bind().dialect.name
        upsert = _UPSERT_DIALECTS.get(dialect)

        try:
            if upsert is not None:
                stmt = upsert(self.table).values(rows).on_conflict_do_nothing().returning(self.right)
                result = await db.execute(stmt)
                inserted = set(result.scalars().all())
            else:
                await db.execute(insert(self.table), rows)
                inserted = set(right_ids)
            await db.commit()

        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                self.logger.warning(f"Concurrent duplicate insert in {self.table.name} for {left_id}: {str(e)}")
                raise ResourceAlreadyExistsException(
                    detail=f"Association already exists in {self.table.name}"
                )
            self.logger.error(f"Integrity error inserting into {self.table.name}: {str(e)}")
            raise DatabaseOperationException(original_error=e)

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error inserting into {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error inserting into {self.table.name}",
                original_error=e
            )

        skipped = set(right_ids) - inserted
        if skipped:
            self.logger.info(
                f"{self.table.name}: {len(skipped)} pair(s) for {self.left.name}={left_id} "
                f"were inserted concurrently: {sorted(skipped)}"
            )
        return inserted

    async def _delete(self, db: AsyncSession, stmt, commit: bool) -> int:
        try:
            result = await db.execute(stmt)
            if commit:
                await db.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error deleting from {self.table.name}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error deleting from {self.table.name}",
                original_error=e
            )

    async def remove_pairs(
            self, db: AsyncSession, left_id: int, right_ids: Iterable[int], *, commit: bool = True
    ) -> int:
        """Delete the given pairs; returns the number of rows removed."""
        right_ids = list(right_ids)
        if not right_ids:
            return 0
        stmt = delete(self.table).where(self.left == left_id, self.right.in_(right_ids))
        return await self._delete(db, stmt, commit)

    async def remove_all_for_left(self, db: AsyncSession, left_id: int, *, commit: bool = True) -> int:
        stmt = delete(self.table).where(self.left == left_id)
        return await self._delete(db, stmt, commit)

    async def remove_all_for_right(self, db: AsyncSession, right_id: int, *, commit: bool = True) -> int:
        stmt = delete(self.table).where(self.right == right_id)
        return await self._delete(db, stmt, commit)

    ########################################################################
    # Integrity
    ########################################################################

    @staticmethod
    def _referenced(column):
        # Both sides of a join table carry exactly one foreign key
        return next(iter(column.foreign_keys)).column

    async def count_orphans(self, db: AsyncSession) -> int:
        """Rows whose left or right entity no longer exists."""
        left_ref = self._referenced(self.left)
        right_ref = self._referenced(self.right)
        query = (
            select(func.count())
            .select_from(
                self.table
                .outerjoin(left_ref.table, self.left == left_ref)
                .outerjoin(right_ref.table, self.right == right_ref)
            )
            .where(or_(left_ref.is_(None), right_ref.is_(None)))
        )
        return (await self._scalars(db, query, "orphans"))[0]

    async def count_distinct_right(self, db: AsyncSession, *criteria) -> int:
        """
        Number of existing right entities present in the table.

        ``criteria`` filter on the right entity's own table, e.g. only
        inactive users of user_groups.
        """
        right_ref = self._referenced(self.right)
        query = (
            select(func.count(distinct(self.right)))
            .select_from(self.table.join(right_ref.table, self.right == right_ref))
        )
        if criteria:
            query = query.where(*criteria)
        return (await self._scalars(db, query, "count"))[0]


# Left side is the entity that "owns" the assignment in the API
user_group_repository = AsyncAssociationRepository(user_groups, "group_id", "user_id")
group_role_repository = AsyncAssociationRepository(group_roles, "group_id", "role_id")
role_permission_repository = AsyncAssociationRepository(role_permissions, "role_id", "permission_id")
