"""
Repository Layer
Durable keyed storage of submission records.

Every mutation runs in its own session and commits the complete change
before returning, so a read issued afterwards (from this or another
process) observes it. Failed writes surface as PersistenceError.
"""

import logging
import os
from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Iterator, List, Optional

from sqlalchemy import Engine, func
from sqlalchemy.exc import DatabaseError, IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from .converters import copy_into_row, row_to_submission, submission_to_row
from .errors import ConflictError, NotFoundError, PersistenceError
from .models import Submission, SubmissionCounts, SubmissionStatus, SubmissionTable

logger = logging.getLogger(__name__)

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.
    In-memory SQLite keeps ONE connection alive (StaticPool) so every
    session sees the same data; file-backed SQLite gets its directory created.
    """
    if database_url in IN_MEMORY_URLS:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    if database_url.startswith("sqlite:///"):
        db_path = database_url[len("sqlite:///"):]
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
    return create_engine(database_url, echo=echo)


class SubmissionRepository:
    """Repository for submission CRUD operations"""

    def __init__(self, engine: Engine):
        self.engine = engine

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def create_schema(self) -> None:
        """
        Create the submissions table.
        An unreadable SQLite file is moved aside and the store starts empty.
        """
        try:
            self._create_tables()
        except DatabaseError as exc:
            db_path = self._sqlite_file()
            if db_path is None or not os.path.exists(db_path):
                raise PersistenceError("Failed to initialize submission storage") from exc

            self.engine.dispose()
            backup = f"{db_path}.corrupt-{datetime.now(UTC):%Y%m%d%H%M%S}"
            os.replace(db_path, backup)
            logger.warning(
                "Unreadable submission store %s (%s); moved to %s and starting empty",
                db_path, exc.__class__.__name__, backup,
            )
            self._create_tables()

    def _create_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine, tables=[SubmissionTable.__table__])
        # Probe every column so a foreign schema fails here, not on first use
        with Session(self.engine) as session:
            session.exec(select(SubmissionTable).limit(1)).all()

    def _sqlite_file(self) -> Optional[str]:
        url = self.engine.url
        if url.get_backend_name() != "sqlite":
            return None
        if not url.database or url.database == ":memory:":
            return None
        return url.database

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Storage failure while trying to %s: %s", action, exc)
            raise PersistenceError(f"Failed to {action}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, submission: Submission) -> Submission:
        """Insert a new submission. Duplicate ids are rejected, never overwritten."""
        with self._storage_errors("save submission"):
            with Session(self.engine) as session:
                if session.get(SubmissionTable, submission.id) is not None:
                    raise ConflictError(f"Submission with ID {submission.id} already exists")

                session.add(submission_to_row(submission))
                try:
                    session.commit()
                except IntegrityError as exc:
                    raise ConflictError(
                        f"Submission with ID {submission.id} already exists"
                    ) from exc
        return submission

    def update(self, submission: Submission) -> Submission:
        """Replace the stored record with the same id in full (never an upsert)"""
        with self._storage_errors("update submission"):
            with Session(self.engine) as session:
                row = session.get(SubmissionTable, submission.id)
                if row is None:
                    raise NotFoundError(f"Submission with ID {submission.id} not found")

                copy_into_row(submission, row)
                session.add(row)
                session.commit()
        return submission

    def delete(self, submission_id: str) -> bool:
        """Remove a submission, returning whether anything was removed"""
        with self._storage_errors("delete submission"):
            with Session(self.engine) as session:
                row = session.get(SubmissionTable, submission_id)
                if row is None:
                    return False

                session.delete(row)
                session.commit()
                return True

    def clear_all(self) -> int:
        """Empty the store. Returns the number of submissions removed."""
        with self._storage_errors("clear submissions"):
            with Session(self.engine) as session:
                rows = session.exec(select(SubmissionTable)).all()
                for row in rows:
                    session.delete(row)
                session.commit()
                return len(rows)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, submission_id: str) -> Optional[Submission]:
        with self._storage_errors("read submission"):
            with Session(self.engine) as session:
                row = session.get(SubmissionTable, submission_id)
                return row_to_submission(row) if row else None

    def get_all(self) -> List[Submission]:
        """All submissions, newest first"""
        with self._storage_errors("list submissions"):
            with Session(self.engine) as session:
                rows = session.exec(self._newest_first(select(SubmissionTable))).all()
                return [row_to_submission(r) for r in rows]

    def get_by_status(self, status: SubmissionStatus) -> List[Submission]:
        """Submissions in one status, newest first"""
        statement = select(SubmissionTable).where(
            SubmissionTable.status == SubmissionStatus(status).value
        )
        with self._storage_errors("list submissions"):
            with Session(self.engine) as session:
                rows = session.exec(self._newest_first(statement)).all()
                return [row_to_submission(r) for r in rows]

    def count_by_status(self) -> SubmissionCounts:
        """Aggregate counts from a single read of the current table"""
        statement = select(SubmissionTable.status, func.count()).group_by(
            SubmissionTable.status
        )
        with self._storage_errors("count submissions"):
            with Session(self.engine) as session:
                per_status = {status: total for status, total in session.exec(statement).all()}

        return SubmissionCounts(
            pending=per_status.get(SubmissionStatus.pending.value, 0),
            approved=per_status.get(SubmissionStatus.approved.value, 0),
            rejected=per_status.get(SubmissionStatus.rejected.value, 0),
            total=sum(per_status.values()),
        )

    @staticmethod
    def _newest_first(statement):
        # id breaks ties between records created in the same microsecond
        return statement.order_by(
            col(SubmissionTable.created_at).desc(), col(SubmissionTable.id).desc()
        )
