#!/usr/bin/env python3
"""
Records held in the club's in-memory state.

Field names are snake_case in Python; `to_dict()` / `from_dict()` speak the
camelCase shape used by the JSON API and the seed file.
"""

import random
import string
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .constants import (
    DEFAULT_PLAN_VALUE,
    GENERATED_ID_LENGTH,
    ROLE_STUDENT,
    STATUS_INACTIVE,
    WORKOUT_TYPE_RUNNING,
    ZONE_KEYS,
)


def generate_id(length: int = GENERATED_ID_LENGTH) -> str:
    """Random lowercase base-36 identifier."""
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(random.choice(alphabet) for _ in range(length))


@dataclass
class WorkoutFeedback:
    """Athlete's report after completing a workout."""
    difficulty: int
    notes: str
    completed_at: str

    def to_dict(self) -> Dict:
        return {
            'difficulty': self.difficulty,
            'notes': self.notes,
            'completedAt': self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'WorkoutFeedback':
        return cls(
            difficulty=int(data['difficulty']),
            notes=data.get('notes', ''),
            completed_at=data.get('completedAt', data.get('completed_at', '')),
        )


@dataclass
class Workout:
    """A prescribed session. `date` is the Sunday anchoring its week."""
    id: str
    student_id: str
    date: str
    title: str
    description: str
    type: str = WORKOUT_TYPE_RUNNING
    warmup_text: Optional[str] = None
    cooldown_text: Optional[str] = None
    activation_exercises: Optional[List[str]] = None
    strength_exercises: Optional[List[str]] = None
    feedback: Optional[WorkoutFeedback] = None

    @property
    def is_completed(self) -> bool:
        return self.feedback is not None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'studentId': self.student_id,
            'date': self.date,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'warmupText': self.warmup_text,
            'cooldownText': self.cooldown_text,
            'activationExercises': list(self.activation_exercises or []),
            'strengthExercises': list(self.strength_exercises or []),
            'feedback': self.feedback.to_dict() if self.feedback else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Workout':
        feedback = data.get('feedback')
        return cls(
            id=data['id'],
            student_id=data['studentId'],
            date=data['date'],
            title=data.get('title', ''),
            description=data.get('description', ''),
            type=data.get('type', WORKOUT_TYPE_RUNNING),
            warmup_text=data.get('warmupText'),
            cooldown_text=data.get('cooldownText'),
            activation_exercises=data.get('activationExercises'),
            strength_exercises=data.get('strengthExercises'),
            feedback=WorkoutFeedback.from_dict(feedback) if feedback else None,
        )


@dataclass
class Exercise:
    """Video in the shared exercise library."""
    id: str
    title: str
    description: str
    video_url: str
    category: str

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'videoUrl': self.video_url,
            'category': self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Exercise':
        return cls(
            id=data['id'],
            title=data['title'],
            description=data.get('description', ''),
            video_url=data.get('videoUrl', ''),
            category=data['category'],
        )


@dataclass
class SpeedZones:
    """Personal pace for each training zone; blank means not set."""
    z1: str = ''
    z2: str = ''
    z3: str = ''
    z4: str = ''
    z5: str = ''

    def to_dict(self) -> Dict:
        return {key: getattr(self, key) for key in ZONE_KEYS}

    @classmethod
    def from_dict(cls, data: Dict) -> 'SpeedZones':
        return cls(**{key: str(data.get(key) or '') for key in ZONE_KEYS})


@dataclass(frozen=True)
class PaymentRecord:
    """One payment. Immutable once created."""
    id: str
    date: str
    amount: float
    method: str
    status: str
    transaction_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'date': self.date,
            'amount': self.amount,
            'method': self.method,
            'status': self.status,
            'transactionId': self.transaction_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PaymentRecord':
        return cls(
            id=data['id'],
            date=data['date'],
            amount=float(data['amount']),
            method=data['method'],
            status=data['status'],
            transaction_id=data.get('transactionId'),
        )


@dataclass
class Student:
    """An athlete coached by the club."""
    id: str
    name: str
    email: str
    password: str
    level: str
    payment_due_date: str
    status: str = STATUS_INACTIVE
    is_verified: bool = False
    payment_history: List[PaymentRecord] = field(default_factory=list)
    speed_zones: Optional[SpeedZones] = None
    plan_value: float = DEFAULT_PLAN_VALUE

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'level': self.level,
            'paymentDueDate': self.payment_due_date,
            'status': self.status,
            'isVerified': self.is_verified,
            'paymentHistory': [p.to_dict() for p in self.payment_history],
            'speedZones': self.speed_zones.to_dict() if self.speed_zones else None,
            'planValue': self.plan_value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Student':
        zones = data.get('speedZones')
        return cls(
            id=data['id'],
            name=data['name'],
            email=data['email'],
            password=data.get('password', ''),
            level=data.get('level', 'Intermediate'),
            payment_due_date=data.get('paymentDueDate', ''),
            status=data.get('status', STATUS_INACTIVE),
            is_verified=bool(data.get('isVerified', False)),
            payment_history=[PaymentRecord.from_dict(p) for p in data.get('paymentHistory', [])],
            speed_zones=SpeedZones.from_dict(zones) if zones else None,
            plan_value=float(data.get('planValue') or DEFAULT_PLAN_VALUE),
        )


@dataclass(frozen=True)
class SessionUser:
    """
    What a login stores: identity and role only.

    Everything mutable (name, status, verification) is read from the live
    Student record whenever it is needed.
    """
    id: str
    role: str

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    def to_dict(self) -> Dict:
        return {'id': self.id, 'role': self.role}


def copy_workout(workout: Workout, **changes) -> Workout:
    """Shallow copy of a workout with some fields changed."""
    return replace(workout, **changes)
