"""
Feedback drafting service turning an analysis report into editable text drafts.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import DictLoader, Environment, StrictUndefined

from app.models.analysis import Assignment, Submission
from app.services.config_service import config_service
from app.services.metrics_service import mean, round_half_up

logger = logging.getLogger("app.feedback")

DRAFT_STATUSES = ("pending", "approved", "rejected")
WEAK_QUESTION_BELOW = 60

CLASS_SUMMARY_TEMPLATE = """\
Class Performance Summary - {{ assignment.title }}

Overall class average: {{ report.classAvg }}%
Total students assessed: {{ report.totalStudents }}

Performance Distribution:
- High performers (>=80%): {{ high_count }} student(s)
- Average performers (50-79%): {{ average_count }} student(s)
- Struggling students (<50%): {{ struggling_count }} student(s)
{% if hardest %}

Most challenging question: "{{ hardest.question }}" (avg {{ hardest.avg }}%)
{% endif %}
{% if easiest %}
Best performed question: "{{ easiest.question }}" (avg {{ easiest.avg }}%)
{% endif %}

{% if struggling_count > 0 %}
{{ struggling_count }} student(s) need immediate intervention. Consider scheduling office hours or providing supplemental materials.
{% else %}
The class overall demonstrated a solid understanding of the material.
{% endif %}

[Edit this summary before sharing with students or department heads]
"""

QUESTION_TEMPLATE = """\
Question: "{{ stat.question }}"
Average Score: {{ stat.avg }}% | Difficulty: {{ stat.get("difficulty", "n/a") }} | Responses: {{ stat.count }}

{% if stat.avg >= 80 %}
Students performed well on this question. Most demonstrated a clear understanding of the core concept.
{% elif stat.avg >= 60 %}
Moderate performance. While many students grasped the basics, there are gaps that need addressing.
{% else %}
This question had low performance. This concept should be revisited in the next class session.
{% endif %}
{% if mistakes %}

Common Mistakes Detected:
{% for m in mistakes %}
  {{ loop.index }}. Pattern: "{{ m.phrase }}" - appeared in {{ m.count }} responses (Confidence: {{ m.confidence }}%)
{% if m.examples %}
     Example: "{{ m.examples[0] }}"
{% endif %}
{% endfor %}

Improvement Suggestion: Focus revision on the specific misconceptions listed above. \
Provide worked examples that directly contrast the correct concept with these common incorrect statements.
{% else %}

No significant repeated mistakes detected for this question.
{% endif %}
"""

STUDENT_TEMPLATE = """\
Feedback for Student {{ student_id }}
Overall Average: {{ avg }}% - {{ band }}

{% if avg >= 80 %}
Excellent work! You demonstrated strong understanding across most questions. \
Keep applying this analytical approach in upcoming assessments.
{% elif avg >= 50 %}
Good effort. You have a foundational understanding but there are areas for improvement. \
Review the class notes for concepts you found challenging.
{% else %}
This was a challenging assessment for you. Don't be discouraged, targeted revision will help. \
Please consider attending office hours to discuss the material.
{% endif %}
{% if weak_questions %}

Areas to focus on: {{ weak_questions | join(", ") }}
{% endif %}
"""


class FeedbackService:
    """Service drafting class, question and student feedback from a report."""

    def __init__(self):
        self.env = Environment(
            loader=DictLoader({
                "class_summary": CLASS_SUMMARY_TEMPLATE,
                "question": QUESTION_TEMPLATE,
                "student": STUDENT_TEMPLATE,
            }),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
            autoescape=False,
        )
        self.logger = logger

    def _render(self, name: str, **context: Any) -> str:
        return self.env.get_template(name).render(**context).strip()

    def class_level_summary(self, assignment: Assignment, report: Dict[str, Any]) -> str:
        """Draft the class-wide summary."""
        bands = report["performanceBands"]
        stats = report["questionStats"]
        hardest = sorted(stats, key=lambda s: s["avg"])[0] if stats else None
        easiest = sorted(stats, key=lambda s: s["avg"], reverse=True)[0] if stats else None
        if easiest is hardest:
            easiest = None

        return self._render(
            "class_summary",
            assignment=assignment,
            report=report,
            high_count=len(bands["high"]),
            average_count=len(bands["average"]),
            struggling_count=len(bands["struggling"]),
            hardest=hardest,
            easiest=easiest,
        )

    def question_feedback(self, question_stat: Dict[str, Any], mistakes_section: Optional[Dict[str, Any]]) -> str:
        """Draft feedback for one question from its stats and mistake patterns."""
        mistakes = (mistakes_section or {}).get("mistakes", [])
        return self._render("question", stat=question_stat, mistakes=mistakes)

    def student_feedback(self, student_id: str, submissions: Sequence[Submission]) -> Optional[str]:
        """
        Draft feedback for one student.

        Args:
            student_id: Student to draft for
            submissions: Submission batch of the assignment

        Returns:
            Draft text, or None if the student has no submissions
        """
        student_subs = [s for s in submissions if s.student_id == student_id]
        if not student_subs:
            return None

        avg = round_half_up(mean([s.effective_score for s in student_subs]))
        if avg >= 80:
            band = "High Performer"
        elif avg >= 50:
            band = "Average Performer"
        else:
            band = "Needs Support"

        weak_questions = [
            f"Question {s.question_index + 1}" for s in student_subs if s.effective_score < WEAK_QUESTION_BELOW
        ]
        return self._render("student", student_id=student_id, avg=avg, band=band, weak_questions=weak_questions)

    def generate_all(
        self, assignment: Assignment, submissions: Sequence[Submission], report: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Draft the full feedback package for an assignment.

        Returns:
            Dictionary with the summary, per-question drafts and per-student
            drafts, all starting in "pending" status
        """
        self.logger.info(f"Generating feedback drafts for assignment {assignment.id}")

        mistakes_by_index = {m["questionIndex"]: m for m in report.get("mistakesByQuestion", [])}
        question_drafts = [
            {
                "questionIndex": question_index,
                "question": stat["question"],
                "draft": self.question_feedback(stat, mistakes_by_index.get(question_index)),
                "status": "pending",
            }
            for question_index, stat in enumerate(report.get("questionStats", []))
        ]

        student_ids: List[str] = list(dict.fromkeys(s.student_id for s in submissions))
        student_drafts = [
            {"studentId": student_id, "draft": self.student_feedback(student_id, submissions), "status": "pending"}
            for student_id in student_ids
        ]

        return {
            "summary": self.class_level_summary(assignment, report),
            "summaryStatus": "pending",
            "questionDrafts": question_drafts,
            "studentDrafts": student_drafts,
            "generatedAt": config_service.now().isoformat(),
        }

    def update_draft_status(self, feedback: Dict[str, Any], kind: str, key: Any, status: str) -> Dict[str, Any]:
        """
        Set the review status of one draft and return the updated package.

        Args:
            feedback: Feedback package from generate_all
            kind: "summary", "question" or "student"
            key: Question index or student id (ignored for the summary)
            status: One of pending, approved, rejected

        Raises:
            ValueError: Unknown status, kind or draft key
        """
        if status not in DRAFT_STATUSES:
            raise ValueError(f"Unknown draft status: {status}")

        updated = dict(feedback)
        if kind == "summary":
            updated["summaryStatus"] = status
            return updated

        if kind == "question":
            field, drafts_key = "questionIndex", "questionDrafts"
        elif kind == "student":
            field, drafts_key = "studentId", "studentDrafts"
        else:
            raise ValueError(f"Unknown draft kind: {kind}")

        drafts = [dict(d) for d in updated.get(drafts_key, [])]
        matched = False
        for draft in drafts:
            if draft.get(field) == key:
                draft["status"] = status
                matched = True
        if not matched:
            raise ValueError(f"No {kind} draft for {key}")

        updated[drafts_key] = drafts
        self.logger.info(f"Draft status updated: kind={kind} key={key} status={status}")
        return updated
