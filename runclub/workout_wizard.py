#!/usr/bin/env python3
"""
Prescription wizard.

Four linear steps produce one Workout:

    1. SELECT_ATHLETE  -> who receives the workout
    2. SELECT_WEEK     -> which Sunday-Saturday week
    3. SELECT_TYPE     -> running or strength
    4. FILL_DETAILS    -> title, texts, exercise videos, then submit

Valid selections move forward one step, `back()` moves back one. Opening the
wizard on an existing workout jumps straight to step 4 with every field
filled in. After `submit()` or `cancel()` the wizard is closed and refuses
further commands.

Generative assist runs outside the wizard. `begin_assist()` hands out a
ticket and marks the wizard busy; `finish_assist()` only applies the text
if that ticket is still the current one and the wizard is still open, so a
response arriving after the coach closed the form is dropped.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Dict, List, Optional

from . import logger
from .constants import (
    DEFAULT_WORKOUT_TITLES,
    WORKOUT_TYPE_RUNNING,
    WORKOUT_TYPES,
    ZONE_MACRO_FIELDS,
)
from .errors import (
    AssistBusyError,
    WizardClosedError,
    WizardStepError,
    WizardValidationError,
)
from .models import Workout, generate_id
from .week_dates import week_anchor_str, week_range
from .zone_macros import ZonesLike, expand_zone_macros


class WizardStep(IntEnum):
    SELECT_ATHLETE = 1
    SELECT_WEEK = 2
    SELECT_TYPE = 3
    FILL_DETAILS = 4


WIZARD_OPEN = 'OPEN'
WIZARD_SUBMITTED = 'SUBMITTED'
WIZARD_CANCELLED = 'CANCELLED'

EXERCISE_PICKERS = {
    'activation': 'activation_exercises',
    'strength': 'strength_exercises',
}


@dataclass
class WorkoutDraft:
    """Form fields of the wizard while it is open."""
    id: str = ''
    student_id: str = ''
    title: str = ''
    description: str = ''
    type: str = WORKOUT_TYPE_RUNNING
    date: str = ''
    warmup_text: str = ''
    cooldown_text: str = ''
    activation_exercises: List[str] = field(default_factory=list)
    strength_exercises: List[str] = field(default_factory=list)

    @classmethod
    def from_workout(cls, workout: Workout) -> 'WorkoutDraft':
        return cls(
            id=workout.id,
            student_id=workout.student_id,
            title=workout.title,
            description=workout.description,
            type=workout.type,
            date=workout.date,
            warmup_text=workout.warmup_text or '',
            cooldown_text=workout.cooldown_text or '',
            activation_exercises=list(workout.activation_exercises or []),
            strength_exercises=list(workout.strength_exercises or []),
        )

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'studentId': self.student_id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'date': self.date,
            'warmupText': self.warmup_text,
            'cooldownText': self.cooldown_text,
            'activationExercises': list(self.activation_exercises),
            'strengthExercises': list(self.strength_exercises),
        }


class WorkoutWizard:
    """One open prescription form."""

    def __init__(self, today: date, initial_student_id: str = '',
                 workout_to_edit: Optional[Workout] = None,
                 wizard_id: Optional[str] = None):
        self.id = wizard_id or generate_id()
        self.status = WIZARD_OPEN
        self._editing = workout_to_edit
        self._assist_ticket: Optional[str] = None

        if workout_to_edit is not None:
            # Existing records are trusted: skip straight to the details
            self.draft = WorkoutDraft.from_workout(workout_to_edit)
            self.step = WizardStep.FILL_DETAILS
        else:
            self.draft = WorkoutDraft(date=week_anchor_str(today))
            self.step = WizardStep.SELECT_ATHLETE
            if initial_student_id:
                self.draft.student_id = initial_student_id
                self.step = WizardStep.SELECT_WEEK

    # === State ===

    @property
    def is_open(self) -> bool:
        return self.status == WIZARD_OPEN

    @property
    def is_editing(self) -> bool:
        return self._editing is not None

    @property
    def is_generating(self) -> bool:
        return self._assist_ticket is not None

    def _require_open(self):
        if not self.is_open:
            raise WizardClosedError(f"Wizard {self.id} is {self.status.lower()}")

    def _require_step(self, step: WizardStep):
        self._require_open()
        if self.step != step:
            raise WizardStepError(
                f"Expected step {int(step)} ({step.name}), wizard is at step {int(self.step)}"
            )

    # === Steps 1-3 ===

    def select_athlete(self, student_id: str):
        self._require_step(WizardStep.SELECT_ATHLETE)
        if not student_id:
            raise WizardValidationError(["Athlete is required"])
        self.draft.student_id = student_id
        self.step = WizardStep.SELECT_WEEK

    def select_week(self, sunday: str):
        """Pick one of the offered weeks. The date is kept as its Sunday."""
        self._require_step(WizardStep.SELECT_WEEK)
        try:
            self.draft.date = week_anchor_str(sunday)
        except ValueError:
            raise WizardValidationError([f"Invalid week: {sunday}"])
        self.step = WizardStep.SELECT_TYPE

    def select_custom_date(self, value: str) -> bool:
        """
        Pick any day; it is normalised to the Sunday of its week.

        Returns False (and stays on step 2) if the date cannot be parsed.
        """
        self._require_step(WizardStep.SELECT_WEEK)
        try:
            anchor = week_anchor_str(value)
        except (TypeError, ValueError):
            return False
        self.draft.date = anchor
        self.step = WizardStep.SELECT_TYPE
        return True

    def select_type(self, workout_type: str):
        self._require_step(WizardStep.SELECT_TYPE)
        if workout_type not in WORKOUT_TYPES:
            raise WizardValidationError([f"Invalid workout type: {workout_type}"])
        self.draft.type = workout_type
        self.step = WizardStep.FILL_DETAILS

    def back(self):
        self._require_open()
        if self.step > WizardStep.SELECT_ATHLETE:
            self.step = WizardStep(self.step - 1)

    # === Step 4 ===

    def set_title(self, title: str):
        self._require_step(WizardStep.FILL_DETAILS)
        self.draft.title = '' if title is None else str(title)

    def set_text(self, field_name: str, value: str, speed_zones: ZonesLike = None):
        """
        Update warm-up, main block or cool-down.

        Running workouts get zone shortcuts expanded with the athlete's paces;
        a strength protocol is stored exactly as typed.
        """
        self._require_step(WizardStep.FILL_DETAILS)
        if field_name not in ZONE_MACRO_FIELDS:
            raise WizardValidationError([f"Unknown text field: {field_name}"])
        value = '' if value is None else str(value)
        if self.draft.type == WORKOUT_TYPE_RUNNING and self.draft.student_id:
            value = expand_zone_macros(value, speed_zones)
        setattr(self.draft, field_name, value)

    def toggle_exercise(self, picker: str, exercise_id: str):
        """Add the exercise to a picker, or take it out if already there."""
        self._require_step(WizardStep.FILL_DETAILS)
        attr = EXERCISE_PICKERS.get(picker)
        if attr is None:
            raise WizardValidationError([f"Unknown exercise picker: {picker}"])
        selected = getattr(self.draft, attr)
        if exercise_id in selected:
            selected.remove(exercise_id)
        else:
            selected.append(exercise_id)

    # === Submission ===

    def validate(self) -> List[str]:
        """Returns list of errors (empty if the draft can be published)."""
        errors = []
        if not self.draft.student_id:
            errors.append("Athlete is required")
        if not self.draft.date:
            errors.append("Week is required")
        return errors

    @property
    def can_submit(self) -> bool:
        return self.is_open and self.step == WizardStep.FILL_DETAILS and not self.validate()

    def submit(self) -> Workout:
        """
        Build the workout and close the wizard.

        Raises:
            WizardStepError: If not on the details step
            WizardValidationError: If athlete or week is missing
        """
        self._require_step(WizardStep.FILL_DETAILS)
        errors = self.validate()
        if errors:
            raise WizardValidationError(errors)

        draft = self.draft
        title = draft.title.strip() or DEFAULT_WORKOUT_TITLES[draft.type]
        workout = Workout(
            id=draft.id or generate_id(),
            student_id=draft.student_id,
            date=draft.date,
            title=title,
            description=draft.description,
            type=draft.type,
            warmup_text=draft.warmup_text,
            cooldown_text=draft.cooldown_text,
            activation_exercises=list(draft.activation_exercises),
            strength_exercises=list(draft.strength_exercises),
            feedback=self._editing.feedback if self._editing else None,
        )

        self.status = WIZARD_SUBMITTED
        self._assist_ticket = None
        logger.info("Workout wizard submitted", wizard=self.id, workout=workout.id,
                    editing=self.is_editing)
        return workout

    def cancel(self):
        """Close without producing a workout. Any in-flight assist is dropped."""
        if not self.is_open:
            return
        if self._assist_ticket:
            logger.debug("Dropping in-flight assist", wizard=self.id)
        self._assist_ticket = None
        self.status = WIZARD_CANCELLED

    # === Generative assist ===

    def begin_assist(self) -> str:
        """
        Reserve the assist for one call.

        Raises:
            AssistBusyError: If a call is already in flight
            WizardValidationError: If title or athlete is missing
        """
        self._require_step(WizardStep.FILL_DETAILS)
        if self.is_generating:
            raise AssistBusyError("Assist already in progress")
        if not self.draft.title or not self.draft.student_id:
            raise WizardValidationError(["Title and athlete are required for the assistant"])
        self._assist_ticket = generate_id()
        return self._assist_ticket

    def finish_assist(self, ticket: str, text: str) -> bool:
        """
        Apply a drafted description.

        Returns False when the response is stale (wizard closed or ticket
        superseded); the text is then discarded.
        """
        if not self.is_open or ticket != self._assist_ticket:
            logger.debug("Discarding stale assist response", wizard=self.id)
            return False
        self.draft.description = text
        self._assist_ticket = None
        return True

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'step': int(self.step),
            'stepName': self.step.name,
            'status': self.status,
            'editing': self.is_editing,
            'generating': self.is_generating,
            'canSubmit': self.can_submit,
            'period': week_range(self.draft.date)['full'],
            'draft': self.draft.to_dict(),
        }
