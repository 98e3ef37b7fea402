"""
User model.

A user owns a denormalized `pending_tasks` list: the ids of the tasks that are
assigned to the user and not yet completed. The list is derived from the
tasks table and kept in step by the pending-task synchronizer; it is never the
source of truth.
"""

from sqlalchemy import JSON, Column, Index, String

from taskboard.models.base import Base, DateCreatedMixin, UUIDMixin


class User(Base, UUIDMixin, DateCreatedMixin):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    name = Column(
        String(255),
        nullable=False,
        comment="Display name, copied into tasks as assigned_user_name",
    )

    email = Column(
        String(255),
        nullable=False,
        comment="Unique e-mail address",
    )

    # Stored as an ordered list, used as a set. Always reassign a new list
    # instead of mutating in place so the change is picked up on flush.
    pending_tasks = Column(
        JSON,
        nullable=False,
        default=list,
        comment="Ids of assigned, not completed tasks",
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
