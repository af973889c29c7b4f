#!/usr/bin/env python3
"""Load the demo students, exercises and workouts the club starts with."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from . import logger
from .config_loader import get_config
from .models import Exercise, Student, Workout

BUNDLED_SEED_FILE: Path = Path(__file__).parent / 'seed_data.yaml'


@dataclass
class SeedData:
    students: List[Student] = field(default_factory=list)
    exercises: List[Exercise] = field(default_factory=list)
    workouts: List[Workout] = field(default_factory=list)


def seed_path() -> Path:
    configured = get_config().get('seed.file')
    return Path(configured) if configured else BUNDLED_SEED_FILE


def load_seed_yaml(path: Optional[Path] = None) -> Optional[Dict]:
    """
    Load the seed YAML.

    Returns None if file doesn't exist. Raises on parse error.
    """
    path = Path(path) if path else seed_path()
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def load_seed(path: Optional[Path] = None) -> SeedData:
    """Parse the seed file into records; a missing file gives an empty club."""
    raw = load_seed_yaml(path)
    if raw is None:
        logger.warning("Seed file not found, starting empty", path=str(path or seed_path()))
        return SeedData()

    data = SeedData(
        students=[Student.from_dict(s) for s in raw.get('students') or []],
        exercises=[Exercise.from_dict(e) for e in raw.get('exercises') or []],
        workouts=[Workout.from_dict(w) for w in raw.get('workouts') or []],
    )
    logger.info("Seed data loaded", students=len(data.students),
                exercises=len(data.exercises), workouts=len(data.workouts))
    return data
