"""
Tests for answer clustering.
"""

from app.models.analysis import Submission
from app.services.answer_cluster_service import AnswerClusterService


def make_submissions(answers, question_index=0):
    return [
        Submission(student_id=f"S{i + 1:02d}", question_index=question_index, answer_text=answer, score=70)
        for i, answer in enumerate(answers)
    ]


class TestCluster:
    """Test AnswerClusterService.cluster()."""

    def test_groups_similar_answers(self):
        """Answers sharing most of their terms land together."""
        service = AnswerClusterService(threshold=0.25)
        clusters = service.cluster([
            "linked list nodes pointers",
            "linked list nodes pointers chain",
            "hash table collision",
            "hash table collision bucket",
        ])

        assert [c.indices for c in clusters] == [[0, 1], [2, 3]]

    def test_members_compared_with_seed_only(self):
        """A chain a~b~c without a~c does not merge into one group."""
        service = AnswerClusterService(threshold=0.25)
        clusters = service.cluster(["alpha beta", "beta gamma", "gamma delta"])

        assert [c.indices for c in clusters] == [[0, 1], [2]]

    def test_result_depends_on_order(self):
        """A seed similar to both ends pulls in members that share nothing."""
        service = AnswerClusterService(threshold=0.25)
        clusters = service.cluster(["beta gamma", "alpha beta", "gamma delta"])

        assert [c.indices for c in clusters] == [[0, 1, 2]]

    def test_partition_covers_every_index_once(self):
        answers = [
            "stack push pop",
            "queue enqueue dequeue",
            "stack last first",
            "",
            "queue first first",
            "tree root leaves",
        ]
        clusters = AnswerClusterService().cluster(answers)

        indices = [i for c in clusters for i in c.indices]
        assert sorted(indices) == list(range(len(answers)))
        assert all(c.seed == min(c.indices) for c in clusters)

    def test_empty_answers_are_singletons(self):
        """Zero vectors are similar to nothing."""
        clusters = AnswerClusterService().cluster(["", "", ""])

        assert [c.indices for c in clusters] == [[0], [1], [2]]

    def test_threshold_override(self):
        service = AnswerClusterService(threshold=0.25)
        clusters = service.cluster(["alpha beta", "beta gamma", "gamma delta"], threshold=0.9)

        assert len(clusters) == 3

    def test_no_documents(self):
        assert AnswerClusterService().cluster([]) == []


class TestClusterQuestion:
    """Test AnswerClusterService.cluster_question()."""

    def test_group_summary(self):
        submissions = make_submissions([
            "hash table collision",
            "linked list nodes pointers",
            "hash table collision bucket",
            "linked list nodes pointers chain",
            "linked list nodes pointers next",
        ])
        groups = AnswerClusterService().cluster_question(submissions, 0)

        assert groups[0] == {
            "size": 3,
            "representative": "linked list nodes pointers",
            "studentIds": ["S02", "S04", "S05"],
        }
        assert groups[1]["size"] == 2
        assert groups[1]["representative"] == "hash table collision"

    def test_keeps_largest_groups_stable(self):
        """Only the top groups survive; equal sizes keep emission order."""
        submissions = make_submissions(["alpha", "bravo", "charlie", "delta", "echo", "foxtrot"])
        groups = AnswerClusterService().cluster_question(submissions, 0, top_groups=4)

        assert [g["representative"] for g in groups] == ["alpha", "bravo", "charlie", "delta"]
        assert all(g["size"] == 1 for g in groups)

    def test_other_questions_ignored(self):
        submissions = make_submissions(["alpha beta"]) + make_submissions(["gamma delta"], question_index=1)
        groups = AnswerClusterService().cluster_question(submissions, 1)

        assert groups == [{"size": 1, "representative": "gamma delta", "studentIds": ["S01"]}]

    def test_question_without_answers(self):
        assert AnswerClusterService().cluster_question([], 0) == []
