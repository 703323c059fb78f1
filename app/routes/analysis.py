"""
Analysis, feedback and scoring API routes.
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.routes.assignments import get_storage, require_assignment
from app.services.analysis_service import AnalysisService
from app.services.config_service import config_service
from app.services.feedback_service import FeedbackService
from app.services.llm_provider import LLMNotConfiguredError, LLMProvider
from app.services.scoring_service import score_heuristic
from app.services.storage_service import StorageService
from worker.analysis_tasks import analyze_assignment as analyze_assignment_task
from worker.analysis_tasks import generate_feedback as generate_feedback_task

logger = logging.getLogger("app.analysis")
router = APIRouter(prefix="/api", tags=["analysis"])

feedback_service = FeedbackService()

SETTING_KEYS = ("GEMINI_API_KEY", "GEMINI_MODEL", "ANALYSIS_CLUSTER_THRESHOLD", "ANALYSIS_KEYWORDS_TOP_N")
SECRET_SETTINGS = ("GEMINI_API_KEY",)
SECRET_MASK = "***"


class ScoreRequest(BaseModel):
    answer: str
    answer_keywords: List[str] = []


class DraftStatusRequest(BaseModel):
    kind: Literal["summary", "question", "student"]
    key: Optional[Union[int, str]] = None
    status: Literal["pending", "approved", "rejected"]


class ExplainRequest(BaseModel):
    question_index: int
    phrase: str


@router.post("/assignments/{assignment_id}/analyze")
async def analyze_assignment(
    assignment_id: str,
    background: bool = Query(False, description="Queue the analysis on the worker instead of running it inline"),
    storage: StorageService = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Analyze the current submissions of an assignment and store the report.

    Args:
        assignment_id: Assignment ID
        background: Queue the work as a Celery task

    Returns:
        The freshly generated analysis report, or the queued task id
    """
    assignment = require_assignment(assignment_id, storage)
    if background:
        task = analyze_assignment_task.delay(assignment_id)
        logger.info(f"Queued analysis for assignment {assignment_id}: task_id={task.id}")
        return {
            "status": "processing",
            "task_id": task.id,
            "message": "Analysis is running in the background. Fetch the report once it completes.",
        }

    try:
        submissions = storage.get_submissions(assignment_id)
        report = AnalysisService().analyze(assignment, submissions)
        storage.save_insights(assignment_id, report)
    except Exception as e:
        logger.error(f"Error analyzing assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return report


@router.get("/assignments/{assignment_id}/report")
async def get_report(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    require_assignment(assignment_id, storage)
    report = storage.get_insights(assignment_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No report for assignment {assignment_id}")
    return report


@router.post("/assignments/{assignment_id}/feedback")
async def generate_feedback(
    assignment_id: str,
    background: bool = Query(False, description="Queue the drafting on the worker instead of running it inline"),
    storage: StorageService = Depends(get_storage),
) -> Dict[str, Any]:
    """Draft feedback from the stored report (analyzing first if there is none)."""
    assignment = require_assignment(assignment_id, storage)
    if background:
        task = generate_feedback_task.delay(assignment_id)
        logger.info(f"Queued feedback drafting for assignment {assignment_id}: task_id={task.id}")
        return {
            "status": "processing",
            "task_id": task.id,
            "message": "Feedback drafts are being generated. Fetch them once the task completes.",
        }

    submissions = storage.get_submissions(assignment_id)

    report = storage.get_insights(assignment_id)
    if report is None:
        report = AnalysisService().analyze(assignment, submissions)
        storage.save_insights(assignment_id, report)

    feedback = feedback_service.generate_all(assignment, submissions, report)
    storage.save_feedback(assignment_id, feedback)
    return feedback


@router.get("/assignments/{assignment_id}/feedback")
async def get_feedback(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    require_assignment(assignment_id, storage)
    feedback = storage.get_feedback(assignment_id)
    if feedback is None:
        raise HTTPException(status_code=404, detail=f"No feedback for assignment {assignment_id}")
    return feedback


@router.patch("/assignments/{assignment_id}/feedback/status")
async def update_feedback_status(
    assignment_id: str, request_data: DraftStatusRequest, storage: StorageService = Depends(get_storage)
) -> Dict[str, Any]:
    require_assignment(assignment_id, storage)
    feedback = storage.get_feedback(assignment_id)
    if feedback is None:
        raise HTTPException(status_code=404, detail=f"No feedback for assignment {assignment_id}")

    try:
        updated = feedback_service.update_draft_status(
            feedback, request_data.kind, request_data.key, request_data.status
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.save_feedback(assignment_id, updated)
    return updated


@router.post("/assignments/{assignment_id}/feedback/llm")
async def generate_llm_feedback(assignment_id: str, storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    """
    Ask the LLM for class feedback written from the stored report.

    The assignment is analyzed first when no report exists yet.
    """
    assignment = require_assignment(assignment_id, storage)
    report = storage.get_insights(assignment_id)
    if report is None:
        report = AnalysisService().analyze(assignment, storage.get_submissions(assignment_id))
        storage.save_insights(assignment_id, report)

    try:
        feedback = LLMProvider().generate_feedback(assignment.title, assignment.subject, report)
    except LLMNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if feedback is None:
        raise HTTPException(status_code=502, detail="LLM provider did not return feedback")
    return {"assignmentId": assignment_id, "feedback": feedback}


@router.post("/assignments/{assignment_id}/mistakes/explain")
async def explain_mistake(
    assignment_id: str, request_data: ExplainRequest, storage: StorageService = Depends(get_storage)
) -> Dict[str, Any]:
    """Ask the LLM to explain a mistake pattern from the stored report."""
    assignment = require_assignment(assignment_id, storage)
    if not 0 <= request_data.question_index < len(assignment.questions):
        raise HTTPException(status_code=400, detail="Question index out of range")

    report = storage.get_insights(assignment_id) or {}
    examples: List[str] = []
    for section in report.get("mistakesByQuestion", []):
        if section["questionIndex"] == request_data.question_index:
            for mistake in section["mistakes"]:
                if mistake["phrase"] == request_data.phrase:
                    examples = mistake["examples"]

    try:
        explanation = LLMProvider().explain_mistake(
            assignment.questions[request_data.question_index], request_data.phrase, examples
        )
    except LLMNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if explanation is None:
        raise HTTPException(status_code=502, detail="LLM provider did not return an explanation")
    return {"phrase": request_data.phrase, "explanation": explanation}


@router.post("/score")
async def score_answer(request_data: ScoreRequest) -> Dict[str, Any]:
    """Score an answer with the keyword/length heuristic."""
    return {"score": score_heuristic(request_data.answer, request_data.answer_keywords)}


@router.get("/stats")
async def get_stats(storage: StorageService = Depends(get_storage)) -> Dict[str, int]:
    return storage.get_stats()


@router.get("/settings")
async def get_settings(storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    settings = storage.get_settings()
    # never echo secrets back
    return {key: (SECRET_MASK if key in SECRET_SETTINGS and value else value) for key, value in settings.items()}


@router.put("/settings")
async def save_settings(settings: Dict[str, str], storage: StorageService = Depends(get_storage)) -> Dict[str, Any]:
    """Persist settings and apply them to the running process."""
    unknown = sorted(set(settings) - set(SETTING_KEYS))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown settings: {', '.join(unknown)}")

    # a masked secret echoed back from GET keeps the stored value
    settings = {
        key: value for key, value in settings.items() if not (key in SECRET_SETTINGS and value == SECRET_MASK)
    }

    merged = {**storage.get_settings(), **settings}
    storage.save_settings(merged)
    for key, value in settings.items():
        config_service.set_setting(key, value)
    return {"status": "success", "keys": sorted(merged)}
