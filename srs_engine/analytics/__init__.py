"""
Analytics package exports.
"""

from srs_engine.analytics.constants import DIFFICULTY_BUCKETS
from srs_engine.analytics.service import (
    build_study_stats,
    cards_in_difficulty_bucket,
    difficulty_distribution,
)
from srs_engine.analytics.types import DifficultyBucketPage, StudyStats

__all__ = [
    "DIFFICULTY_BUCKETS",
    "build_study_stats",
    "cards_in_difficulty_bucket",
    "difficulty_distribution",
    "DifficultyBucketPage",
    "StudyStats",
]
