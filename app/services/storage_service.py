"""
Storage service for assignments, submissions, reports and feedback drafts.

Records live as JSON lists under fixed keys behind a RecordRepository, so the
analytics code never touches a concrete storage mechanism.
"""
import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from app.models.analysis import Assignment, Submission
from app.models.storage import StoredRecord
from app.services.config_service import config_service

logger = logging.getLogger("app.storage")

ASSIGNMENTS = "assignments"
SUBMISSIONS = "submissions"
INSIGHTS = "insights"
FEEDBACK = "feedback"
SETTINGS = "settings"


class RecordRepository(ABC):
    """Key-value repository of record lists."""

    @abstractmethod
    def load(self, key: str) -> List[Dict[str, Any]]:
        """Return the records stored under ``key`` (empty list if none)."""

    @abstractmethod
    def save(self, key: str, records: List[Dict[str, Any]]) -> None:
        """Replace the records stored under ``key``."""

    def commit(self) -> None:
        """Make the saves since the last commit durable."""

    def rollback(self) -> None:
        """Discard the saves since the last commit, where the backend supports it."""


class InMemoryRecordRepository(RecordRepository):
    """Dictionary-backed repository, used by tests and one-off scripts."""

    def __init__(self):
        self._data: Dict[str, List[Dict[str, Any]]] = {}

    def load(self, key: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._data.get(key, []))

    def save(self, key: str, records: List[Dict[str, Any]]) -> None:
        self._data[key] = copy.deepcopy(records)


class SQLRecordRepository(RecordRepository):
    """Repository storing each key as one StoredRecord row."""

    def __init__(self, db: Session):
        self.db = db

    def load(self, key: str) -> List[Dict[str, Any]]:
        record = self.db.get(StoredRecord, key)
        if record is None:
            return []
        try:
            records = json.loads(record.records_json)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Corrupt records under key {key}: {e}")
            return []
        if not isinstance(records, list):
            logger.error(f"Unexpected record payload under key {key}: {type(records).__name__}")
            return []
        return records

    def save(self, key: str, records: List[Dict[str, Any]]) -> None:
        payload = json.dumps(records, ensure_ascii=False, default=str)
        record = self.db.get(StoredRecord, key)
        if record is None:
            record = StoredRecord(key=key, records_json=payload)
            self.db.add(record)
        else:
            record.records_json = payload
            record.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        logger.debug(f"Saved {len(records)} records under key {key}")

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class StorageService:
    """
    CRUD helpers over a RecordRepository.

    Every public write is one unit of work: all keys it touches are committed
    together, or rolled back together if any save fails.
    """

    def __init__(self, repository: RecordRepository):
        self.repository = repository
        self.logger = logger

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.repository.commit()
        except Exception as e:
            self.logger.error(f"Storage write failed, rolling back: {e}")
            self.repository.rollback()
            raise

    # Assignments

    def save_assignment(self, assignment: Assignment) -> Assignment:
        with self._transaction():
            records = [r for r in self.repository.load(ASSIGNMENTS) if r.get("id") != assignment.id]
            records.append(assignment.model_dump(mode="json"))
            self.repository.save(ASSIGNMENTS, records)
        self.logger.info(f"Saved assignment {assignment.id}")
        return assignment

    def get_assignments(self) -> List[Assignment]:
        return [Assignment.model_validate(r) for r in self.repository.load(ASSIGNMENTS)]

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        for record in self.repository.load(ASSIGNMENTS):
            if record.get("id") == assignment_id:
                return Assignment.model_validate(record)
        return None

    def update_assignment(self, assignment_id: str, patch: Dict[str, Any]) -> Optional[Assignment]:
        """
        Merge ``patch`` into an assignment.

        Returns:
            The updated assignment, or None if it does not exist

        Raises:
            pydantic.ValidationError: The merged assignment is invalid
        """
        with self._transaction():
            records = self.repository.load(ASSIGNMENTS)
            updated = None
            for index, record in enumerate(records):
                if record.get("id") == assignment_id:
                    merged = Assignment.model_validate({**record, **patch, "id": assignment_id})
                    records[index] = merged.model_dump(mode="json")
                    updated = merged
            if updated is not None:
                self.repository.save(ASSIGNMENTS, records)
        if updated is not None:
            self.logger.info(f"Updated assignment {assignment_id}: fields={sorted(patch)}")
        return updated

    def delete_assignment(self, assignment_id: str) -> bool:
        """Delete an assignment along with its submissions, report and feedback."""
        with self._transaction():
            records = self.repository.load(ASSIGNMENTS)
            remaining = [r for r in records if r.get("id") != assignment_id]
            if len(remaining) == len(records):
                return False

            self.repository.save(ASSIGNMENTS, remaining)
            self._remove_submissions(assignment_id)
            for key in (INSIGHTS, FEEDBACK):
                self.repository.save(
                    key, [r for r in self.repository.load(key) if r.get("assignmentId") != assignment_id]
                )
        self.logger.info(f"Deleted assignment {assignment_id}")
        return True

    # Submissions

    def save_submissions(self, submissions: List[Submission]) -> List[Submission]:
        """Append submissions, assigning ids to those without one."""
        stored = []
        for submission in submissions:
            if not submission.id:
                submission = submission.model_copy(update={"id": f"sub_{uuid.uuid4().hex[:12]}"})
            stored.append(submission)

        with self._transaction():
            records = self.repository.load(SUBMISSIONS)
            records.extend(s.model_dump(mode="json") for s in stored)
            self.repository.save(SUBMISSIONS, records)
        self.logger.info(f"Saved {len(stored)} submissions")
        return stored

    def get_submissions(self, assignment_id: Optional[str] = None) -> List[Submission]:
        records = self.repository.load(SUBMISSIONS)
        if assignment_id:
            records = [r for r in records if r.get("assignment_id") == assignment_id]
        return [Submission.model_validate(r) for r in records]

    def _remove_submissions(self, assignment_id: str) -> int:
        records = self.repository.load(SUBMISSIONS)
        remaining = [r for r in records if r.get("assignment_id") != assignment_id]
        self.repository.save(SUBMISSIONS, remaining)
        return len(records) - len(remaining)

    def clear_submissions(self, assignment_id: str) -> int:
        with self._transaction():
            removed = self._remove_submissions(assignment_id)
        self.logger.info(f"Cleared {removed} submissions for assignment {assignment_id}")
        return removed

    # Reports

    def save_insights(self, assignment_id: str, report: Dict[str, Any]) -> None:
        """Store the report for an assignment, replacing any earlier one."""
        with self._transaction():
            records = [r for r in self.repository.load(INSIGHTS) if r.get("assignmentId") != assignment_id]
            records.append({
                "assignmentId": assignment_id,
                "insights": report,
                "generatedAt": config_service.now().isoformat(),
            })
            self.repository.save(INSIGHTS, records)
        self.logger.info(f"Saved analysis report for assignment {assignment_id}")

    def get_insights(self, assignment_id: str) -> Optional[Dict[str, Any]]:
        for record in self.repository.load(INSIGHTS):
            if record.get("assignmentId") == assignment_id:
                return record.get("insights")
        return None

    # Feedback drafts

    def save_feedback(self, assignment_id: str, feedback: Dict[str, Any]) -> None:
        with self._transaction():
            records = [r for r in self.repository.load(FEEDBACK) if r.get("assignmentId") != assignment_id]
            records.append({
                "assignmentId": assignment_id,
                "feedback": feedback,
                "savedAt": config_service.now().isoformat(),
            })
            self.repository.save(FEEDBACK, records)
        self.logger.info(f"Saved feedback drafts for assignment {assignment_id}")

    def get_feedback(self, assignment_id: str) -> Optional[Dict[str, Any]]:
        for record in self.repository.load(FEEDBACK):
            if record.get("assignmentId") == assignment_id:
                return record.get("feedback")
        return None

    # Settings

    def get_settings(self) -> Dict[str, Any]:
        records = self.repository.load(SETTINGS)
        return records[0] if records else {}

    def save_settings(self, settings: Dict[str, Any]) -> None:
        with self._transaction():
            self.repository.save(SETTINGS, [settings])
        self.logger.info(f"Saved settings: keys={sorted(settings)}")

    def get_stats(self) -> Dict[str, int]:
        """Counts shown on the dashboard."""
        insights = self.repository.load(INSIGHTS)
        return {
            "assignments": len(self.repository.load(ASSIGNMENTS)),
            "submissions": len(self.repository.load(SUBMISSIONS)),
            "insights": sum(len((r.get("insights") or {}).get("mistakesByQuestion", [])) for r in insights),
            "feedbackDrafts": len(self.repository.load(FEEDBACK)),
        }
