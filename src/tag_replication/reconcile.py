"""Open-time sweep that purges tasks the remote validator rejects."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, delete, select

from tag_replication.errors import ReconciliationError
from tag_replication.models import ReconcileSummary, TaskStatus
from tag_replication.storage.sqlmodel_models import ReplicationTaskRow
from tag_replication.validator import RemoteValidator

logger = logging.getLogger(__name__)
_DELETE_BATCH_SIZE = 500


def delete_invalid_tasks(engine: Engine, validator: RemoteValidator) -> ReconcileSummary:
    """Validate every persisted task and delete the rejected ones.

    The validator is called outside of any database transaction since it may
    be slow. Deletions are applied in one transaction after every task has
    been checked, so a validator error leaves the database untouched.
    """

    with Session(engine) as session:
        rows = session.exec(
            select(ReplicationTaskRow).order_by(col(ReplicationTaskRow.task_seq).asc()),
        ).all()

    summary = ReconcileSummary(checked=len(rows))
    rejected: list[int] = []
    for row in rows:
        try:
            is_valid = validator.valid(row.tag, row.destination)
        except Exception as error:  # noqa: BLE001
            raise ReconciliationError(
                "Remote validator failed while reconciling persisted tasks "
                f"(tag={row.tag}, destination={row.destination}): {error}",
                tag=row.tag,
                destination=row.destination,
            ) from error
        if is_valid:
            continue

        logger.warning(
            "Purging %s replication task rejected by remote validator "
            "(tag=%s destination=%s).",
            row.status,
            row.tag,
            row.destination,
        )
        if row.task_seq is not None:
            rejected.append(row.task_seq)
        if row.status == TaskStatus.PENDING.value:
            summary.deleted_pending += 1
        else:
            summary.deleted_failed += 1

    if rejected:
        with Session(engine) as session:
            for start in range(0, len(rejected), _DELETE_BATCH_SIZE):
                batch = rejected[start : start + _DELETE_BATCH_SIZE]
                session.exec(
                    delete(ReplicationTaskRow).where(col(ReplicationTaskRow.task_seq).in_(batch)),
                )
            session.commit()

    logger.info(
        "Reconciled replication tasks: checked=%d deleted_pending=%d deleted_failed=%d",
        summary.checked,
        summary.deleted_pending,
        summary.deleted_failed,
    )
    return summary
