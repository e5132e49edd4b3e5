"""Session queue builders for flashcard study."""

from srs_engine.session_builders.learn_session import (
    ExamSummary,
    build_due_queue,
    build_learn_queue,
    build_new_queue,
    prioritized_exam_documents,
    summarize_exams,
)
from srs_engine.session_builders.queue_types import (
    QueueConfig,
    QueueEntry,
    SessionLimits,
)

__all__ = [
    "ExamSummary",
    "build_due_queue",
    "build_learn_queue",
    "build_new_queue",
    "prioritized_exam_documents",
    "summarize_exams",
    "QueueConfig",
    "QueueEntry",
    "SessionLimits",
]
