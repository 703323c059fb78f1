"""
Database initialization and demo data.
"""
import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from app.database.engine import engine
from app.database.session import storage_session
from app.models.analysis import Assignment, Submission
from app.services.storage_service import StorageService

logger = logging.getLogger("app.database")

DEMO_ASSIGNMENT_ID = "demo-001"

DEMO_QUESTIONS = [
    "What is a linked list?",
    "Explain time complexity of binary search.",
    "What is a hash collision?",
]

# (student_id, question_index, answer, score)
DEMO_ANSWERS = [
    ("S01", 0, "A linked list is a sequence of nodes where each node points to the next.", 90),
    ("S02", 0, "Linked list stores data in arrays", 40),
    ("S03", 0, "It is a data structure with nodes connected by pointers.", 88),
    ("S04", 0, "A linked list is like an array but elements are stored in random memory locations.", 65),
    ("S05", 0, "Nodes with data and next pointer forming a chain.", 92),
    ("S06", 0, "Linked lists store elements in memory directly without pointers", 35),
    ("S07", 0, "A list of elements linked using pointers, first is head.", 85),
    ("S08", 0, "It stores data in arrays and uses index to access", 30),
    ("S01", 1, "Binary search has time complexity O(log n) because it halves the search space each step.", 95),
    ("S02", 1, "Binary search is O(n) because it checks all elements", 20),
    ("S03", 1, "O(log n) - each iteration halves the array.", 93),
    ("S04", 1, "It is O(n log n) because sorting is required", 45),
    ("S05", 1, "O(log n) complexity since we divide by 2 every time.", 91),
    ("S06", 1, "O(n) time complexity searching through the list", 20),
    ("S07", 1, "Binary search is O(log n) as it divides problem in half.", 90),
    ("S08", 1, "O(n log n) because it sorts and searches", 40),
    ("S01", 2, "A hash collision occurs when two keys hash to the same index.", 94),
    ("S02", 2, "Collision is when the hash table is full", 25),
    ("S03", 2, "When two different keys produce the same hash value, it is a collision.", 96),
    ("S04", 2, "Collision means the key is not found in the table", 20),
    ("S05", 2, "Two keys map to same bucket causing a collision, resolved by chaining or probing.", 98),
    ("S06", 2, "Hash collision is when the algorithm crashes", 10),
    ("S07", 2, "Same hash index for different keys; resolved by open addressing.", 90),
    ("S08", 2, "When hash function returns error for duplicate key", 15),
]


def demo_assignment() -> Assignment:
    return Assignment(
        id=DEMO_ASSIGNMENT_ID,
        title="Data Structures - Midterm Q&A",
        subject="Computer Science",
        questions=list(DEMO_QUESTIONS),
    )


def demo_submissions() -> list:
    return [
        Submission(
            id=f"s{number}",
            assignment_id=DEMO_ASSIGNMENT_ID,
            student_id=student_id,
            question_index=question_index,
            answer_text=answer,
            score=score,
        )
        for number, (student_id, question_index, answer, score) in enumerate(DEMO_ANSWERS, start=1)
    ]


def seed_demo_data(storage: StorageService) -> bool:
    """
    Seed the demo assignment if no assignment exists yet.

    Returns:
        True if demo data was inserted
    """
    if storage.get_assignments():
        logger.debug("Assignments already present, skipping demo seed")
        return False

    storage.save_assignment(demo_assignment())
    storage.save_submissions(demo_submissions())
    logger.info(f"Demo data seeded: {len(DEMO_QUESTIONS)} questions, {len(DEMO_ANSWERS)} submissions")
    return True


def create_tables(bind: Engine = engine) -> None:
    SQLModel.metadata.create_all(bind)
    logger.info("Database tables created")


def init_database(seed_demo: bool = False) -> None:
    """
    Initialize database tables and optionally the demo data.
    """
    logger.info("Initializing database...")

    create_tables()

    if seed_demo:
        with storage_session() as storage:
            seed_demo_data(storage)

    logger.info("Database initialization completed")


if __name__ == "__main__":
    init_database(seed_demo=True)
