"""
Task model.

A task owns the assignment relationship: `assigned_user` holds the id of the
assigned user as a string, or "" when unassigned, and `assigned_user_name`
carries a copy of that user's name taken at write time ("unassigned" when
there is none). There is no foreign key; the service layer checks
the reference when the assignment is written.
"""

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from taskboard.models.base import Base, DateCreatedMixin, UUIDMixin

UNASSIGNED = ""
UNASSIGNED_NAME = "unassigned"


class Task(Base, UUIDMixin, DateCreatedMixin):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assigned_user", "assigned_user"),
        Index("ix_tasks_completed", "completed"),
    )

    name = Column(String(255), nullable=False, comment="Task title")

    description = Column(Text, nullable=False, default="", comment="Free text")

    deadline = Column(DateTime(timezone=True), nullable=False, comment="Due date")

    completed = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="Completed tasks never appear in a user's pending list",
    )

    assigned_user = Column(
        String(64),
        nullable=False,
        default=UNASSIGNED,
        comment="Id of the assigned user, empty string when unassigned",
    )

    assigned_user_name = Column(
        String(255),
        nullable=False,
        default=UNASSIGNED_NAME,
        comment="Name of the assigned user at assignment time",
    )

    def __repr__(self):
        return (
            f"<Task(id={self.id}, name='{self.name[:50]}', "
            f"assigned_user='{self.assigned_user}', completed={self.completed})>"
        )
