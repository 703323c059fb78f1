"""
Tests for the report orchestrator.
"""

from app.models.analysis import Assignment, Submission
from app.services.analysis_service import AnalysisService
from app.services.config_service import config_service

REPORT_KEYS = {
    "classAvg",
    "totalStudents",
    "totalSubmissions",
    "questionStats",
    "performanceBands",
    "mistakesByQuestion",
    "keywordsByQuestion",
    "clustersByQuestion",
    "generatedAt",
}


class TestAnalyze:
    """Test AnalysisService.analyze()."""

    def test_demo_report(self, sample_assignment, sample_submissions, fake_clock):
        report = AnalysisService().analyze(sample_assignment, sample_submissions)

        assert set(report) == REPORT_KEYS
        assert report["classAvg"] == 61
        assert report["totalStudents"] == 8
        assert report["totalSubmissions"] == 24
        assert report["generatedAt"] == fake_clock
        assert [s["difficulty"] for s in report["questionStats"]] == ["Moderate", "Moderate", "Moderate"]

    def test_per_question_sections_align(self, sample_assignment, sample_submissions):
        report = AnalysisService().analyze(sample_assignment, sample_submissions)

        for section in ("mistakesByQuestion", "keywordsByQuestion", "clustersByQuestion"):
            entries = report[section]
            assert [e["questionIndex"] for e in entries] == [0, 1, 2]
            assert [e["question"] for e in entries] == sample_assignment.questions

    def test_demo_mistakes(self, sample_assignment, sample_submissions):
        report = AnalysisService().analyze(sample_assignment, sample_submissions)
        mistakes = [entry["mistakes"] for entry in report["mistakesByQuestion"]]

        assert [m["phrase"] for m in mistakes[0]] == ["stores data", "data arrays", "stores data arrays"]
        assert mistakes[1] == [{
            "phrase": "log because",
            "count": 2,
            "confidence": 50,
            "affectedStudents": 4,
            "examples": [],
        }]
        assert mistakes[2] == []

    def test_demo_clusters(self, sample_assignment, sample_submissions):
        report = AnalysisService().analyze(sample_assignment, sample_submissions)

        for entry in report["clustersByQuestion"]:
            groups = entry["groups"]
            answers = [s.answer_text for s in sample_submissions if s.question_index == entry["questionIndex"]]
            assert 1 <= len(groups) <= 4
            assert [g["size"] for g in groups] == sorted((g["size"] for g in groups), reverse=True)
            assert sum(g["size"] for g in groups) <= 8
            for group in groups:
                assert len(group["studentIds"]) == group["size"]
                assert group["representative"] in answers

    def test_empty_submissions(self):
        assignment = Assignment(id="a1", title="Empty", questions=["Q1", "Q2"])
        report = AnalysisService().analyze(assignment, [])

        assert report["classAvg"] == 0
        assert report["totalStudents"] == 0
        assert report["totalSubmissions"] == 0
        assert report["performanceBands"] == {"high": [], "average": [], "struggling": []}
        assert report["questionStats"][0] == {"question": "Q1", "avg": 0, "low": 0, "high": 0, "count": 0}
        for section, key in (("mistakesByQuestion", "mistakes"), ("keywordsByQuestion", "keywords"),
                             ("clustersByQuestion", "groups")):
            assert all(entry[key] == [] for entry in report[section])

    def test_no_questions(self):
        assignment = Assignment(id="a1", title="No questions")
        submissions = [Submission(student_id="S1", question_index=0, answer_text="answer", score=80)]
        report = AnalysisService().analyze(assignment, submissions)

        assert report["questionStats"] == []
        assert report["clustersByQuestion"] == []
        assert report["classAvg"] == 80

    def test_out_of_range_index_counts_class_wide_only(self):
        assignment = Assignment(id="a1", title="One question", questions=["Q1"])
        submissions = [
            Submission(student_id="S1", question_index=0, answer_text="alpha", score=90),
            Submission(student_id="S2", question_index=3, answer_text="beta", score=10),
        ]
        report = AnalysisService().analyze(assignment, submissions)

        assert report["classAvg"] == 50
        assert report["totalStudents"] == 2
        assert report["questionStats"][0]["count"] == 1
        assert report["clustersByQuestion"][0]["groups"][0]["studentIds"] == ["S1"]

    def test_deterministic(self, sample_assignment, sample_submissions, fake_clock):
        service = AnalysisService()
        first = service.analyze(sample_assignment, sample_submissions)
        second = service.analyze(sample_assignment, list(sample_submissions))

        assert first == second

    def test_settings_drive_defaults(self, sample_assignment, sample_submissions):
        config_service.set_setting("ANALYSIS_CLUSTER_TOP_GROUPS", "1")
        config_service.set_setting("ANALYSIS_KEYWORDS_TOP_N", "3")
        report = AnalysisService().analyze(sample_assignment, sample_submissions)

        assert all(len(entry["groups"]) == 1 for entry in report["clustersByQuestion"])
        assert all(len(entry["keywords"]) == 3 for entry in report["keywordsByQuestion"])

    def test_custom_stop_words(self):
        config_service.set_setting("ANALYSIS_STOP_WORDS", "Pointer, node")
        assignment = Assignment(id="a1", title="Stop words", questions=["Q1"])
        submissions = [Submission(student_id="S1", question_index=0, answer_text="pointer node chain", score=90)]
        report = AnalysisService().analyze(assignment, submissions)

        assert report["keywordsByQuestion"][0]["keywords"] == [{"word": "chain", "score": 0.0}]
