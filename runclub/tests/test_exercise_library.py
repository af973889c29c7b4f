#!/usr/bin/env python3
"""
Tests for the exercise video library.

Run with: pytest runclub/tests/test_exercise_library.py -v
"""

import sys
from pathlib import Path

import pytest

# Add repository root for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from runclub.errors import ExerciseValidationError
from runclub.exercise_library import build_exercise, filter_exercises, format_youtube_url
from runclub.models import Exercise


class TestFormatYoutubeUrl:

    @pytest.mark.parametrize('url', [
        'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
        'https://youtu.be/dQw4w9WgXcQ',
        'https://www.youtube.com/embed/dQw4w9WgXcQ',
        'https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ',
    ])
    def test_youtube_forms(self, url):
        assert format_youtube_url(url) == 'https://www.youtube.com/embed/dQw4w9WgXcQ'

    def test_other_url_unchanged(self):
        assert format_youtube_url('https://vimeo.com/12345') == 'https://vimeo.com/12345'

    def test_wrong_id_length_unchanged(self):
        url = 'https://youtu.be/short'
        assert format_youtube_url(url) == url


class TestBuildExercise:

    def test_new_exercise(self):
        exercise = build_exercise('Prancha', 'https://youtu.be/dQw4w9WgXcQ',
                                  'Core firme', 'ACTIVATION')
        assert exercise.title == 'Prancha'
        assert exercise.video_url == 'https://www.youtube.com/embed/dQw4w9WgXcQ'
        assert exercise.category == 'ACTIVATION'
        assert len(exercise.id) == 9

    def test_default_category_is_strength(self):
        assert build_exercise('Afundo', 'https://x.com/v').category == 'STRENGTH'

    def test_edit_keeps_id(self):
        existing = Exercise(id='ex3', title='Old', description='', video_url='u',
                            category='STRENGTH')
        assert build_exercise('New', 'u2', existing=existing).id == 'ex3'

    def test_title_and_video_required(self):
        with pytest.raises(ExerciseValidationError):
            build_exercise('', 'https://youtu.be/dQw4w9WgXcQ')
        with pytest.raises(ExerciseValidationError):
            build_exercise('Prancha', ' ')

    def test_invalid_category(self):
        with pytest.raises(ExerciseValidationError):
            build_exercise('Prancha', 'u', category='RUNNING')


class TestFilter:

    @pytest.fixture
    def library(self):
        return [
            Exercise(id='a', title='A', description='', video_url='u', category='ACTIVATION'),
            Exercise(id='s', title='S', description='', video_url='u', category='STRENGTH'),
        ]

    def test_all(self, library):
        assert [e.id for e in filter_exercises(library)] == ['a', 's']

    def test_by_category(self, library):
        assert [e.id for e in filter_exercises(library, 'STRENGTH')] == ['s']
        assert [e.id for e in filter_exercises(library, 'ACTIVATION')] == ['a']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
