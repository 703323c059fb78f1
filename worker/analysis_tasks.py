"""
Celery tasks for assignment analysis and feedback drafting.
"""
import logging
from typing import Any, Dict

from app.database.session import storage_session
from app.services.analysis_service import AnalysisService
from app.services.feedback_service import FeedbackService
from worker.celery_app import celery_app

logger = logging.getLogger("worker.analysis_tasks")
feedback_service = FeedbackService()


@celery_app.task(bind=True, name="analysis.analyze_assignment")
def analyze_assignment(self, assignment_id: str) -> Dict[str, Any]:
    """
    Analyze an assignment's current submissions and store the report.

    Args:
        assignment_id: Assignment to analyze

    Returns:
        Dictionary with task status and headline numbers
    """
    logger.info(f"Starting analysis task for assignment: {assignment_id}")

    try:
        with storage_session() as storage:
            assignment = storage.get_assignment(assignment_id)
            if assignment is None:
                logger.error(f"Analysis failed: assignment {assignment_id} not found")
                return {"status": "failed", "error": "Assignment not found", "assignment_id": assignment_id}

            report = AnalysisService().analyze(assignment, storage.get_submissions(assignment_id))
            storage.save_insights(assignment_id, report)

            logger.info(f"Analysis task completed for assignment {assignment_id}: class_avg={report['classAvg']}")
            return {
                "status": "success",
                "assignment_id": assignment_id,
                "class_avg": report["classAvg"],
                "total_students": report["totalStudents"],
                "total_submissions": report["totalSubmissions"],
                "generated_at": report["generatedAt"],
            }

    except Exception as e:
        logger.error(f"Error in analysis task: {e}")
        return {"status": "failed", "error": str(e), "assignment_id": assignment_id}


@celery_app.task(bind=True, name="analysis.generate_feedback")
def generate_feedback(self, assignment_id: str) -> Dict[str, Any]:
    """
    Draft feedback for an assignment from its stored report.

    The assignment is analyzed first when no report exists yet.

    Args:
        assignment_id: Assignment to draft feedback for

    Returns:
        Dictionary with task status and draft counts
    """
    logger.info(f"Starting feedback task for assignment: {assignment_id}")

    try:
        with storage_session() as storage:
            assignment = storage.get_assignment(assignment_id)
            if assignment is None:
                logger.error(f"Feedback failed: assignment {assignment_id} not found")
                return {"status": "failed", "error": "Assignment not found", "assignment_id": assignment_id}

            submissions = storage.get_submissions(assignment_id)
            report = storage.get_insights(assignment_id)
            if report is None:
                report = AnalysisService().analyze(assignment, submissions)
                storage.save_insights(assignment_id, report)

            feedback = feedback_service.generate_all(assignment, submissions, report)
            storage.save_feedback(assignment_id, feedback)

            logger.info(f"Feedback task completed for assignment {assignment_id}")
            return {
                "status": "success",
                "assignment_id": assignment_id,
                "question_drafts": len(feedback["questionDrafts"]),
                "student_drafts": len(feedback["studentDrafts"]),
            }

    except Exception as e:
        logger.error(f"Error in feedback task: {e}")
        return {"status": "failed", "error": str(e), "assignment_id": assignment_id}
