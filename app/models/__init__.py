"""ORM model package."""

from app.models.entities import (
    ConsultantProfile,
    DailyUpdate,
    Project,
    ProjectLog,
    ProjectTeamMember,
    Task,
    TaskAssignment,
    TaskComment,
    TaskLog,
    TaskTimeEntry,
    User,
    UserLog,
    Vendor,
)

__all__ = [
    "ConsultantProfile",
    "DailyUpdate",
    "Project",
    "ProjectLog",
    "ProjectTeamMember",
    "Task",
    "TaskAssignment",
    "TaskComment",
    "TaskLog",
    "TaskTimeEntry",
    "User",
    "UserLog",
    "Vendor",
]
