from __future__ import annotations

import uuid
from collections.abc import Iterable
from functools import wraps
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard import db as database
from taskboard.models.base import Base
from taskboard.services.query_builder import ListQuery, build_conditions, build_order_by
from taskboard.utils.logger import setup_logger

logger = setup_logger("db_handlers")


ModelType = TypeVar("ModelType", bound=Base)


def check_local_db(func):
    """
    Database session decorator with transaction management.

    When the caller passes `db`, the call joins the caller's session and
    transaction. Otherwise a new session is opened, the call runs inside one
    transaction, and it is committed on success or rolled back on any error.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        # Nested call: the outermost caller owns the transaction.
        if kwargs.get("db"):
            return await func(*args, **kwargs)

        async with database.AppAsyncSessionLocal() as db:
            kwargs["db"] = db
            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception as e:
                await db.rollback()
                log = logger.warning if isinstance(e, IntegrityError) else logger.debug
                log(f"Transaction rolled back in {func.__name__}: {e!r}")
                raise

    return wrapper


def parse_uuid(value: Any) -> uuid.UUID | None:
    """Return the UUID for `value`, or None when it is not a valid id."""
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class BaseDBHandler(Generic[ModelType]):
    """
    Generic handler for database operations with basic CRUD methods.

    Writes are flushed, not committed: the session owner decides when the
    transaction ends (see `check_local_db`).
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    @check_local_db
    async def create(
        self, obj_dict: dict[str, Any], *, db: AsyncSession = None
    ) -> ModelType:
        """Create a new record in the database."""
        db_obj = self.model(**obj_dict)
        try:
            db.add(db_obj)
            await db.flush()
            return db_obj
        except IntegrityError as e:
            logger.warning(f"IntegrityError creating {self.model.__name__}: {e}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            raise

    @check_local_db
    async def get(
        self, id: Any, *, db: AsyncSession = None, for_update: bool = False
    ) -> ModelType | None:
        """Get a single record by its primary key; malformed ids match nothing."""
        record_id = parse_uuid(id)
        if record_id is None:
            return None
        stmt = select(self.model).where(self.model.id == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def get_by_attributes(
        self, *, db: AsyncSession = None, **kwargs
    ) -> ModelType | None:
        """Get a single record by a set of attributes."""
        stmt = select(self.model).filter_by(**kwargs)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def get_many_by_ids(
        self,
        ids: Iterable[Any],
        *,
        db: AsyncSession = None,
        for_update: bool = False,
    ) -> list[ModelType]:
        """Load every record whose id is in `ids`; malformed ids are skipped."""
        record_ids = [rid for rid in (parse_uuid(i) for i in ids) if rid is not None]
        if not record_ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(record_ids))
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def find(
        self, query: ListQuery, *, db: AsyncSession = None
    ) -> list[ModelType]:
        """List records matching a parsed list query."""
        stmt = select(self.model).where(*build_conditions(self.model, query.where))
        order_by = build_order_by(self.model, query.sort)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if query.skip:
            stmt = stmt.offset(query.skip)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @check_local_db
    async def count(self, query: ListQuery, *, db: AsyncSession = None) -> int:
        """Count records matching the `where` part of a list query."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*build_conditions(self.model, query.where))
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @check_local_db
    async def update(
        self,
        db_obj: ModelType,
        update_data: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> ModelType:
        """Update an existing record in the database."""
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        try:
            db.add(db_obj)
            await db.flush()
            return db_obj
        except SQLAlchemyError as e:
            logger.error(
                f"Error updating {self.model.__name__} with id {db_obj.id}: {e}",
                exc_info=True,
            )
            raise

    @check_local_db
    async def remove(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        """Remove a record by its primary key and return it, or None if absent."""
        obj = await self.get(id, db=db)
        if obj:
            try:
                await db.delete(obj)
                await db.flush()
                return obj
            except SQLAlchemyError as e:
                logger.error(
                    f"Error removing {self.model.__name__} with id {id}: {e}",
                    exc_info=True,
                )
                raise
        return None
