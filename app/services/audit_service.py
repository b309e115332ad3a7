"""Audit trail writers.

Two contracts live here:

* :meth:`AuditTrail.record_best_effort` is fire-and-forget. It never raises;
  a failed write is rolled back and logged locally. Report endpoints use it so
  that audit problems never fail a read.
* :meth:`AuditTrail.add_project_entry` / :meth:`AuditTrail.add_task_entry`
  only stage rows in the caller's transaction. Mutations commit them together
  with the domain change, or not at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.models.entities import ProjectLog, TaskLog, UserLog
from app.repositories.work_repository import WorkRepository

logger = logging.getLogger(__name__)


def describe_filters(filters: Mapping[str, object]) -> str:
    return json.dumps(dict(filters), default=str, sort_keys=True)


class AuditTrail:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WorkRepository(db)

    def record_best_effort(
        self,
        context: RequestUserContext,
        *,
        action: str,
        description: str,
    ) -> UserLog | None:
        """Write and commit one ``user_logs`` row.

        Never raises: any failure is logged with its traceback, the session is
        rolled back and ``None`` is returned.
        """

        try:
            row = self.repo.add_user_log(
                UserLog(
                    user_id=context.user_id,
                    action=action[:100],
                    description=description,
                    ip_address=context.ip_address,
                )
            )
            self.db.commit()
        except Exception:
            logger.warning("Audit write failed for user %s (%s)", context.user_id, action, exc_info=True)
            try:
                self.db.rollback()
            except Exception:
                logger.warning("Rollback after failed audit write also failed", exc_info=True)
            return None
        return row

    def add_user_entry(self, context: RequestUserContext, *, action: str, description: str) -> UserLog:
        return self.repo.add_user_log(
            UserLog(
                user_id=context.user_id,
                action=action[:100],
                description=description,
                ip_address=context.ip_address,
            )
        )

    def add_project_entry(
        self,
        context: RequestUserContext,
        *,
        project_id: int,
        action: str,
        description: str,
    ) -> ProjectLog:
        return self.repo.add_project_log(
            ProjectLog(project_id=project_id, user_id=context.user_id, action=action, description=description)
        )

    def add_task_entry(
        self,
        context: RequestUserContext,
        *,
        task_id: int,
        action: str,
        description: str,
    ) -> TaskLog:
        return self.repo.add_task_log(
            TaskLog(task_id=task_id, user_id=context.user_id, action=action, description=description)
        )
