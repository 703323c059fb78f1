"""
Analysis service composing the statistics, keyword, cluster and mistake reports.
"""
import logging
import time
from typing import Any, Dict, Iterable, Optional, Sequence

from app.models.analysis import Assignment, Submission
from app.services.answer_cluster_service import DEFAULT_THRESHOLD, DEFAULT_TOP_GROUPS, AnswerClusterService
from app.services.config_service import config_service
from app.services.metrics_service import DEFAULT_KEYWORDS_TOP_N, MetricsService
from app.services.mistake_service import MistakeMiningService

logger = logging.getLogger("app.analysis")


class AnalysisService:
    """Service producing one analysis report per assignment and submission snapshot."""

    def __init__(
        self,
        cluster_threshold: Optional[float] = None,
        cluster_top_groups: Optional[int] = None,
        keywords_top_n: Optional[int] = None,
        stop_words: Optional[Iterable[str]] = None,
    ):
        if cluster_threshold is None:
            cluster_threshold = config_service.get_float("ANALYSIS_CLUSTER_THRESHOLD", DEFAULT_THRESHOLD)
        if cluster_top_groups is None:
            cluster_top_groups = config_service.get_int("ANALYSIS_CLUSTER_TOP_GROUPS", DEFAULT_TOP_GROUPS)
        if keywords_top_n is None:
            keywords_top_n = config_service.get_int("ANALYSIS_KEYWORDS_TOP_N", DEFAULT_KEYWORDS_TOP_N)
        if stop_words is None:
            configured = config_service.get_list("ANALYSIS_STOP_WORDS")
            stop_words = frozenset(word.lower() for word in configured) if configured else None

        self.cluster_top_groups = cluster_top_groups
        self.keywords_top_n = keywords_top_n
        self.metrics_service = MetricsService(stop_words)
        self.mistake_service = MistakeMiningService(stop_words)
        self.cluster_service = AnswerClusterService(cluster_threshold, stop_words)
        self.logger = logger

    def analyze(self, assignment: Assignment, submissions: Sequence[Submission]) -> Dict[str, Any]:
        """
        Build the full analysis report for an assignment.

        Degenerate input (no submissions, no wrong answers, empty answers) yields
        zeroes and empty lists rather than errors. Submissions pointing at a
        question index outside the assignment are ignored by the per-question
        sections but still count toward the class-wide numbers.

        Args:
            assignment: Assignment with its ordered questions
            submissions: Snapshot of the assignment's submissions

        Returns:
            Report dictionary (classAvg, totalStudents, totalSubmissions,
            questionStats, performanceBands, mistakesByQuestion,
            keywordsByQuestion, clustersByQuestion, generatedAt)
        """
        started = time.time()
        questions = list(assignment.questions)
        self.logger.info(
            f"Starting analysis for assignment {assignment.id}: {len(questions)} questions, {len(submissions)} submissions"
        )

        mistakes_by_question = []
        keywords_by_question = []
        clusters_by_question = []
        for question_index, question in enumerate(questions):
            mistakes_by_question.append({
                "question": question,
                "questionIndex": question_index,
                "mistakes": self.mistake_service.mine_mistakes(submissions, question_index),
            })
            keywords_by_question.append({
                "question": question,
                "questionIndex": question_index,
                "keywords": self.metrics_service.top_keywords(submissions, question_index, self.keywords_top_n),
            })
            clusters_by_question.append({
                "question": question,
                "questionIndex": question_index,
                "groups": self.cluster_service.cluster_question(submissions, question_index, self.cluster_top_groups),
            })

        report = {
            "classAvg": self.metrics_service.class_average(submissions),
            "totalStudents": self.metrics_service.total_students(submissions),
            "totalSubmissions": len(submissions),
            "questionStats": self.metrics_service.question_stats(submissions, questions),
            "performanceBands": self.metrics_service.classify_performance(submissions),
            "mistakesByQuestion": mistakes_by_question,
            "keywordsByQuestion": keywords_by_question,
            "clustersByQuestion": clusters_by_question,
            "generatedAt": config_service.now().isoformat(),
        }

        self.logger.info(
            f"Analysis completed for assignment {assignment.id}: class_avg={report['classAvg']} "
            f"students={report['totalStudents']} duration_ms={round((time.time() - started) * 1000, 2)}"
        )
        return report
