#!/usr/bin/env python3
"""
Exercise video library.

The coach curates short videos for activation drills and strength work;
workouts reference them by id. Videos are stored as embeddable YouTube URLs
when the link can be recognised.
"""

import re
from typing import Iterable, List, Optional

from .constants import EXERCISE_CATEGORIES, EXERCISE_FILTER_ALL, WORKOUT_TYPE_STRENGTH
from .errors import ExerciseValidationError
from .models import Exercise, generate_id

# youtu.be/ID, /v/ID, /u/x/ID, /embed/ID, watch?v=ID, &v=ID
YOUTUBE_ID_PATTERN = re.compile(r'^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*')
YOUTUBE_ID_LENGTH = 11


def format_youtube_url(url: str) -> str:
    """Turn any recognisable YouTube link into its /embed/ form."""
    match = YOUTUBE_ID_PATTERN.match(url)
    if match and len(match.group(2)) == YOUTUBE_ID_LENGTH:
        return f"https://www.youtube.com/embed/{match.group(2)}"
    return url


def build_exercise(title: str, video_url: str, description: str = '',
                   category: str = WORKOUT_TYPE_STRENGTH,
                   existing: Optional[Exercise] = None) -> Exercise:
    """
    Build an exercise from the library form.

    Editing keeps the existing id; a new exercise gets a fresh one.

    Raises:
        ExerciseValidationError: If title or video is missing, or the
                                 category is not STRENGTH/ACTIVATION
    """
    title = (title or '').strip()
    video_url = (video_url or '').strip()
    if not title or not video_url:
        raise ExerciseValidationError("Title and video URL are required")
    if category not in EXERCISE_CATEGORIES:
        raise ExerciseValidationError(f"Invalid category: {category}")

    return Exercise(
        id=existing.id if existing else generate_id(),
        title=title,
        description=description or '',
        video_url=format_youtube_url(video_url),
        category=category,
    )


def filter_exercises(exercises: Iterable[Exercise], category: str = EXERCISE_FILTER_ALL) -> List[Exercise]:
    """Exercises in one category, or all of them for 'ALL'."""
    if category == EXERCISE_FILTER_ALL:
        return list(exercises)
    return [ex for ex in exercises if ex.category == category]
