"""
Answer clustering service grouping lexically similar answers.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.models.analysis import AnswerCluster, Submission
from app.services.tfidf_service import compute_tfidf, similarity_matrix

logger = logging.getLogger("app.answer_cluster")

DEFAULT_THRESHOLD = 0.25
DEFAULT_TOP_GROUPS = 4


class AnswerClusterService:
    """Service for clustering answers of one question by TF-IDF cosine similarity."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, stop_words: Optional[Iterable[str]] = None):
        self.threshold = threshold
        self.stop_words = stop_words
        self.logger = logger

    def cluster(self, documents: Sequence[str], threshold: Optional[float] = None) -> List[AnswerCluster]:
        """
        Partition documents with a single greedy left-to-right pass.

        Each unassigned document seeds a new cluster and absorbs every later
        unassigned document whose similarity to the seed reaches the threshold.
        Members are compared with the seed only, never with each other, so the
        result depends on input order.

        Args:
            documents: Answer texts in their original order
            threshold: Similarity cut-off, defaults to the service threshold

        Returns:
            Clusters in emission order; together they cover every index exactly once
        """
        if threshold is None:
            threshold = self.threshold

        vectors = compute_tfidf(documents, self.stop_words)
        similarities = similarity_matrix(vectors)
        assigned = [False] * len(documents)
        clusters: List[AnswerCluster] = []

        for i in range(len(documents)):
            if assigned[i]:
                continue
            members = [i]
            assigned[i] = True
            for j in range(i + 1, len(documents)):
                if not assigned[j] and similarities[i, j] >= threshold:
                    members.append(j)
                    assigned[j] = True
            clusters.append(AnswerCluster(indices=members))

        self.logger.debug(f"Clustered {len(documents)} answers into {len(clusters)} groups (threshold={threshold})")
        return clusters

    def cluster_question(
        self, submissions: Sequence[Submission], question_index: int, top_groups: int = DEFAULT_TOP_GROUPS
    ) -> List[Dict[str, Any]]:
        """
        Cluster the answers to one question and summarize the largest groups.

        Args:
            submissions: Full submission batch
            question_index: Question to cluster
            top_groups: Number of groups to keep after sorting by size

        Returns:
            List of {size, representative, studentIds}, largest first
        """
        question_subs = [s for s in submissions if s.question_index == question_index]
        answers = [s.answer_text for s in question_subs]

        groups = [
            {
                "size": cluster.size,
                "representative": answers[cluster.seed],
                "studentIds": [question_subs[i].student_id for i in cluster.indices],
            }
            for cluster in self.cluster(answers)
        ]

        # sorted() is stable: equal sizes keep emission order
        return sorted(groups, key=lambda group: group["size"], reverse=True)[:top_groups]
