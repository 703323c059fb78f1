"""
Assignment and submission API routes.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from app.database.session import get_session
from app.models.analysis import Assignment, Submission
from app.services.import_service import ImportService, ImportValidationError, apply_heuristic_scores
from app.services.storage_service import SQLRecordRepository, StorageService

logger = logging.getLogger("app.assignments")
router = APIRouter(prefix="/api/assignments", tags=["assignments"])

import_service = ImportService()


class AssignmentPatch(BaseModel):
    title: Optional[str] = None
    subject: Optional[str] = None
    questions: Optional[List[str]] = None
    answer_keywords: Optional[List[List[str]]] = None


class SubmissionIn(BaseModel):
    id: Optional[str] = None
    student_id: str
    question_index: int
    answer_text: str = ""
    score: Optional[float] = None


def get_storage(db: Session = Depends(get_session)) -> StorageService:
    """Dependency providing a storage service bound to the request session."""
    return StorageService(SQLRecordRepository(db))


def require_assignment(assignment_id: str, storage: StorageService) -> Assignment:
    assignment = storage.get_assignment(assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    return assignment


@router.post("", status_code=201)
async def create_assignment(assignment: Assignment, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    """Create or replace an assignment."""
    logger.info(f"Creating assignment {assignment.id}")
    storage.save_assignment(assignment)
    return assignment.model_dump(mode="json")


@router.get("")
async def list_assignments(storage: StorageService = Depends(get_storage)) -> List[Dict[str, Any]]:
    return [a.model_dump(mode="json") for a in storage.get_assignments()]


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    return require_assignment(assignment_id, storage).model_dump(mode="json")


@router.patch("/{assignment_id}")
async def update_assignment(
    assignment_id: str, patch: AssignmentPatch, storage: StorageService = Depends(get_storage)
) -> Dict[str, Any]:
    require_assignment(assignment_id, storage)
    try:
        updated = storage.update_assignment(assignment_id, patch.model_dump(exclude_unset=True))
    except ValidationError as e:
        detail = e.errors(include_url=False, include_context=False, include_input=False)
        raise HTTPException(status_code=422, detail=detail)
    return updated.model_dump(mode="json")


@router.delete("/{assignment_id}")
async def delete_assignment(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    if not storage.delete_assignment(assignment_id):
        raise HTTPException(status_code=404, detail=f"Assignment {assignment_id} not found")
    return {"status": "success", "deleted": assignment_id}


@router.post("/{assignment_id}/submissions", status_code=201)
async def add_submissions(
    assignment_id: str,
    submissions: List[SubmissionIn],
    auto_score: bool = Query(False, description="Fill missing scores with the heuristic"),
    storage: StorageService = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Append a batch of submissions to an assignment.

    Args:
        assignment_id: Assignment ID
        submissions: Submissions to append
        auto_score: Score submissions without a score using the heuristic

    Returns:
        Number of stored submissions and their ids
    """
    assignment = require_assignment(assignment_id, storage)
    try:
        batch = [Submission(assignment_id=assignment_id, **s.model_dump()) for s in submissions]
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if auto_score:
        batch = apply_heuristic_scores(batch, assignment)

    stored = storage.save_submissions(batch)
    logger.info(f"Added {len(stored)} submissions to assignment {assignment_id}")
    return {"status": "success", "count": len(stored), "ids": [s.id for s in stored]}


@router.get("/{assignment_id}/submissions")
async def list_submissions(assignment_id: str, storage: StorageService = Depends(get_storage)) -> List[Dict[str, Any]]:
    require_assignment(assignment_id, storage)
    return [s.model_dump(mode="json") for s in storage.get_submissions(assignment_id)]


@router.delete("/{assignment_id}/submissions")
async def clear_submissions(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    require_assignment(assignment_id, storage)
    removed = storage.clear_submissions(assignment_id)
    return {"status": "success", "removed": removed}


@router.post("/{assignment_id}/submissions/import", status_code=201)
async def import_submissions(
    assignment_id: str,
    file: UploadFile = File(...),
    one_based: bool = Query(False, description="Question numbers in the file start at 1"),
    auto_score: bool = Query(False, description="Fill missing scores with the heuristic"),
    storage: StorageService = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Import submissions from an uploaded CSV or Excel file.

    Returns:
        Import summary with stored, total and skipped row counts
    """
    logger.info(f"Submission import requested: {file.filename}")
    assignment = require_assignment(assignment_id, storage)

    content = await file.read()
    try:
        result = import_service.parse_submissions(content, file.filename or "", assignment_id, one_based=one_based)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    batch = result["submissions"]
    if auto_score:
        batch = apply_heuristic_scores(batch, assignment)
    stored = storage.save_submissions(batch)

    return {
        "status": "success",
        "imported": len(stored),
        "total_rows": result["total_rows"],
        "skipped_rows": result["skipped_rows"],
    }
