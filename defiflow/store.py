from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from .models import ExecutionRecord, Workflow, WorkflowPatch

logger = logging.getLogger(__name__)


class SQLiteStore:
    def __init__(self, db_path: str = "data/workflows.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS workflows (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    definition TEXT NOT NULL,
                    created TEXT NOT NULL,
                    updated TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS executions (
                    id TEXT PRIMARY KEY,
                    workflow_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    finished_at TEXT,
                    result TEXT,
                    error TEXT,
                    FOREIGN KEY(workflow_id) REFERENCES workflows(id)
                )
                """
            )

    def create_workflow(self, workflow: Workflow) -> Workflow:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO workflows (id, name, definition, created, updated) VALUES (?, ?, ?, ?, ?)",
                (
                    workflow.id,
                    workflow.name,
                    workflow.model_dump_json(),
                    workflow.created,
                    workflow.updated,
                ),
            )
        logger.info("Workflow created: %s (%s)", workflow.name, workflow.id)
        return workflow

    def update_workflow(self, workflow_id: str, patch: WorkflowPatch) -> Workflow | None:
        existing = self.get_workflow(workflow_id)
        if existing is None:
            return None

        data = existing.model_dump()
        data.update(patch.model_dump(exclude_none=True))
        updated = Workflow.model_validate(data)
        updated.touch()
        with self._connect() as conn:
            conn.execute(
                "UPDATE workflows SET name = ?, definition = ?, updated = ? WHERE id = ?",
                (
                    updated.name,
                    updated.model_dump_json(),
                    updated.updated,
                    workflow_id,
                ),
            )
        logger.info("Workflow updated: %s (%s)", updated.name, workflow_id)
        return updated

    def delete_workflow(self, workflow_id: str) -> bool:
        with self._connect() as conn:
            conn.execute("DELETE FROM executions WHERE workflow_id = ?", (workflow_id,))
            cursor = conn.execute("DELETE FROM workflows WHERE id = ?", (workflow_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Workflow deleted: %s", workflow_id)
        return deleted

    def get_workflow(self, workflow_id: str) -> Workflow | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT definition FROM workflows WHERE id = ?",
                (workflow_id,),
            ).fetchone()

        if not row:
            return None
        return Workflow.model_validate_json(row["definition"])

    def list_workflows(self) -> list[Workflow]:
        with self._connect() as conn:
            rows = conn.execute("SELECT definition FROM workflows ORDER BY created DESC").fetchall()

        return [Workflow.model_validate_json(row["definition"]) for row in rows]

    def create_execution(self, workflow_id: str) -> ExecutionRecord:
        execution = ExecutionRecord(
            id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            status="running",
            started_at=datetime.now(timezone.utc),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO executions (id, workflow_id, status, started_at, finished_at, result, error)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    execution.id,
                    execution.workflow_id,
                    execution.status,
                    execution.started_at.isoformat(),
                    None,
                    None,
                    None,
                ),
            )
        return execution

    def finish_execution(
        self,
        execution_id: str,
        status: str,
        result: dict | None = None,
        error: str | None = None,
    ) -> None:
        finished_at = datetime.now(timezone.utc).isoformat()
        result_blob = json.dumps(result) if result is not None else None

        with self._connect() as conn:
            conn.execute(
                """
                UPDATE executions
                SET status = ?, finished_at = ?, result = ?, error = ?
                WHERE id = ?
                """,
                (status, finished_at, result_blob, error, execution_id),
            )

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM executions WHERE id = ?",
                (execution_id,),
            ).fetchone()

        if not row:
            return None
        return self._execution_from_row(row)

    def list_executions(self, workflow_id: str) -> list[ExecutionRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM executions WHERE workflow_id = ? ORDER BY started_at DESC",
                (workflow_id,),
            ).fetchall()
        return [self._execution_from_row(row) for row in rows]

    @staticmethod
    def _execution_from_row(row: sqlite3.Row) -> ExecutionRecord:
        return ExecutionRecord(
            id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            started_at=datetime.fromisoformat(row["started_at"]),
            finished_at=datetime.fromisoformat(row["finished_at"]) if row["finished_at"] else None,
            result=json.loads(row["result"]) if row["result"] else None,
            error=row["error"],
        )
