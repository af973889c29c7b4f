#!/usr/bin/env python3
"""
The club's application state.

ClubState owns every record the back office knows about (students,
workouts, exercises) and the prescription wizards that are currently open.
The web layer never touches the lists directly: it calls the command
methods below, which validate, mutate and log.

Nothing is persisted. A fresh ClubState starts from the seed file.
"""

import threading
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set

from . import logger
from .auth import LoginResult, authenticate, check_verification_code
from .config_loader import get_config
from .constants import (
    EXERCISE_FILTER_ALL,
    FEEDBACK_DIFFICULTY_MAX,
    FEEDBACK_DIFFICULTY_MIN,
    MAX_OPEN_WIZARDS,
    ROLE_STUDENT,
    STATUS_ACTIVE,
    STUDENT_LEVELS,
    STUDENT_STATUSES,
    WEEK_CURRENT,
    WEEK_FUTURE,
    WEEK_PAST,
    WEEK_TAB_LABELS,
    WIZARD_IDLE_MINUTES,
)
from .errors import (
    AssistBusyError,
    FeedbackValidationError,
    NotFoundError,
    StudentValidationError,
)
from .exercise_library import build_exercise, filter_exercises
from .finance import (
    card_checkout,
    manual_payment,
    monthly_recurring_revenue,
    new_student,
    parse_plan_value,
    pix_checkout,
    total_balance,
)
from .gemini_service import GeminiService, get_gemini_service
from .models import (
    Exercise,
    PaymentRecord,
    SessionUser,
    SpeedZones,
    Student,
    Workout,
    WorkoutFeedback,
)
from .repository import Repository, WorkoutRepository
from .seed import SeedData, load_seed
from .week_dates import bucket_workouts, group_by_week, nearby_weeks, week_anchor_str
from .workout_wizard import WorkoutWizard

# Student fields the coach (or the zone editor) may change after enrolment
UPDATABLE_STUDENT_FIELDS = {
    'name', 'email', 'password', 'level', 'payment_due_date',
    'status', 'is_verified', 'speed_zones', 'plan_value',
}


class ClubState:
    """In-memory back office: records, open wizards and the commands on them."""

    def __init__(self, students: Optional[Iterable[Student]] = None,
                 exercises: Optional[Iterable[Exercise]] = None,
                 workouts: Optional[Iterable[Workout]] = None,
                 gemini: Optional[GeminiService] = None,
                 today: Optional[Callable[[], date]] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self.students: Repository[Student] = Repository(list(students or []), kind='student')
        self.exercises: Repository[Exercise] = Repository(list(exercises or []), kind='exercise')
        self.workouts = WorkoutRepository(list(workouts or []))
        self.wizards: Dict[str, WorkoutWizard] = {}
        self._wizard_touched: Dict[str, datetime] = {}
        self._gemini = gemini
        self._today = today or date.today
        self._now = now or datetime.now
        self._exports_in_flight: Set[str] = set()
        self._lock = threading.RLock()

    @classmethod
    def from_seed(cls, path=None, **kwargs) -> 'ClubState':
        """Build a club from the seed file (bundled one unless configured)."""
        data: SeedData = load_seed(path)
        return cls(students=data.students, exercises=data.exercises,
                   workouts=data.workouts, **kwargs)

    @property
    def gemini(self) -> GeminiService:
        if self._gemini is None:
            self._gemini = get_gemini_service()
        return self._gemini

    def today(self) -> date:
        return self._today()

    def now(self) -> datetime:
        return self._now()

    # === Students ===

    def get_student(self, student_id: str) -> Optional[Student]:
        return self.students.get(student_id)

    def require_student(self, student_id: str) -> Student:
        student = self.students.get(student_id)
        if student is None:
            raise NotFoundError(f"Student not found: {student_id}")
        return student

    def add_student(self, name: str, email: str, **fields) -> Student:
        """Enrol a student from the coach's form."""
        if any(s.email == str(email or '').strip() for s in self.students):
            raise StudentValidationError(f"Email already enrolled: {email}")
        student = new_student(name, email, **fields)
        self.students.add(student)
        logger.info("Student enrolled", student=student.id, level=student.level)
        return student

    def update_student(self, student_id: str, **updates) -> bool:
        """
        Merge the given fields into the live student record.

        Returns:
            True if the student exists, False otherwise (nothing changes)

        Raises:
            StudentValidationError: On an unknown field, an invalid value, a
                blank name or e-mail, or an e-mail another student already uses
        """
        unknown = set(updates) - UPDATABLE_STUDENT_FIELDS
        if unknown:
            raise StudentValidationError(f"Cannot update: {', '.join(sorted(unknown))}")
        if 'level' in updates and updates['level'] not in STUDENT_LEVELS:
            raise StudentValidationError(f"Invalid level: {updates['level']}")
        if 'status' in updates and updates['status'] not in STUDENT_STATUSES:
            raise StudentValidationError(f"Invalid status: {updates['status']}")
        if 'plan_value' in updates:
            updates['plan_value'] = parse_plan_value(updates['plan_value'])
        for key in ('name', 'email'):
            if key in updates:
                updates[key] = str(updates[key] or '').strip()
                if not updates[key]:
                    raise StudentValidationError(f"{key.capitalize()} cannot be blank")
        if 'email' in updates and any(s.email == updates['email'] and s.id != student_id
                                      for s in self.students):
            raise StudentValidationError(f"Email already enrolled: {updates['email']}")

        student = self.students.get(student_id)
        if student is None:
            logger.warning("Update ignored: unknown student", id=student_id)
            return False
        for name, value in updates.items():
            setattr(student, name, value)
        logger.info("Student updated", student=student_id, fields=sorted(updates))
        return True

    def set_speed_zones(self, student_id: str, zones: Dict[str, str]) -> bool:
        return self.update_student(student_id, speed_zones=SpeedZones.from_dict(zones or {}))

    # === Payments ===

    def add_payment(self, student_id: str, payment: PaymentRecord) -> bool:
        """Prepend a payment to the student's history. False if unknown student."""
        student = self.students.get(student_id)
        if student is None:
            logger.warning("Payment ignored: unknown student", id=student_id)
            return False
        student.payment_history.insert(0, payment)
        logger.info("Payment recorded", student=student_id, amount=payment.amount,
                    method=payment.method)
        return True

    def register_manual_payment(self, student_id: str, amount, payment_date: Optional[str] = None,
                                method: Optional[str] = None) -> PaymentRecord:
        self.require_student(student_id)
        kwargs = {'method': method} if method else {}
        payment = manual_payment(amount, payment_date or self.today().isoformat(), **kwargs)
        self.add_payment(student_id, payment)
        return payment

    def card_checkout(self, student_id: str) -> PaymentRecord:
        """Approve the monthly plan by card and reactivate the student."""
        student = self.require_student(student_id)
        payment = card_checkout(student, today=self.today())
        self.add_payment(student_id, payment)
        student.status = STATUS_ACTIVE
        return payment

    def pix_checkout(self, student_id: str) -> Dict[str, str]:
        self.require_student(student_id)
        return pix_checkout()

    def finance_summary(self) -> Dict:
        students = self.students.all()
        return {
            'mrr': monthly_recurring_revenue(students),
            'totalBalance': total_balance(students),
            'students': len(students),
            'activeStudents': sum(1 for s in students if s.status == STATUS_ACTIVE),
        }

    # === Login ===

    def login(self, email: str, password: str) -> LoginResult:
        return authenticate(email, password, self.students)

    def verify(self, pending_student_id: str, code: str) -> Optional[SessionUser]:
        """
        Finish a login that was waiting for the verification code.

        Marks the live student record verified. Returns None on a wrong code
        or an unknown student.
        """
        student = self.students.get(pending_student_id)
        if student is None or not check_verification_code(code):
            logger.warning("Verification failed", student=pending_student_id)
            return None
        student.is_verified = True
        logger.info("Student verified", student=student.id)
        return SessionUser(id=student.id, role=ROLE_STUDENT)

    def current_user(self, session_user: SessionUser) -> Optional[Dict]:
        """
        Read-only view of the logged-in user, built from live records.

        Returns None if a student session points at a student that no longer exists.
        """
        if not session_user.is_student:
            config = get_config()
            return {
                'id': session_user.id,
                'role': session_user.role,
                'name': config.get('auth.coach_name', ''),
                'email': config.get('auth.coach_email', ''),
            }
        student = self.students.get(session_user.id)
        if student is None:
            return None
        view = student.to_dict()
        view['role'] = session_user.role
        return view

    # === Workouts ===

    def add_workout(self, workout: Workout) -> Workout:
        return self.workouts.add(workout)

    def replace_workout(self, workout: Workout) -> bool:
        return self.workouts.replace(workout)

    def remove_workout(self, workout_id: str) -> bool:
        return self.workouts.remove(workout_id)

    def workouts_for(self, student_id: str) -> List[Workout]:
        return self.workouts.by_student(student_id)

    def dashboard_groups(self, student_id: str):
        """Coach view of one athlete: workouts under 'Semana de dd/mm' headings."""
        return group_by_week(self.workouts_for(student_id))

    # === Exercises ===

    def list_exercises(self, category: str = EXERCISE_FILTER_ALL) -> List[Exercise]:
        return filter_exercises(self.exercises, category)

    def save_exercise(self, title: str, video_url: str, description: str = '',
                      category: Optional[str] = None,
                      exercise_id: Optional[str] = None) -> Exercise:
        """
        Create an exercise, or update it when `exercise_id` is given.

        Raises:
            ExerciseValidationError: If title or video is missing
            NotFoundError: If `exercise_id` is unknown
        """
        existing = None
        if exercise_id:
            existing = self.exercises.get(exercise_id)
            if existing is None:
                raise NotFoundError(f"Exercise not found: {exercise_id}")
        if not category and existing is not None:
            category = existing.category
        kwargs = {'category': category} if category else {}
        exercise = build_exercise(title, video_url, description, existing=existing, **kwargs)
        if existing is not None:
            self.exercises.replace(exercise)
        else:
            self.exercises.add(exercise)
        return exercise

    def add_exercise(self, exercise: Exercise) -> Exercise:
        return self.exercises.add(exercise)

    def replace_exercise(self, exercise: Exercise) -> bool:
        return self.exercises.replace(exercise)

    def remove_exercise(self, exercise_id: str) -> bool:
        return self.exercises.remove(exercise_id)

    # === Wizard ===

    def nearby_weeks(self) -> List[Dict]:
        return nearby_weeks(self.today())

    def open_wizard(self, initial_student_id: str = '',
                    workout_id: Optional[str] = None) -> WorkoutWizard:
        """
        Open a prescription form, blank or on an existing workout.

        Forms left idle for WIZARD_IDLE_MINUTES are cancelled first, and the
        least recently used ones go when MAX_OPEN_WIZARDS are already open.

        Raises:
            NotFoundError: If `workout_id` or `initial_student_id` is unknown
        """
        workout = None
        if workout_id:
            workout = self.workouts.get(workout_id)
            if workout is None:
                raise NotFoundError(f"Workout not found: {workout_id}")
        if initial_student_id:
            self.require_student(initial_student_id)
        wizard = WorkoutWizard(self.today(), initial_student_id=initial_student_id,
                               workout_to_edit=workout)
        with self._lock:
            self._release_abandoned_wizards()
            self.wizards[wizard.id] = wizard
            self._wizard_touched[wizard.id] = self.now()
        logger.debug("Wizard opened", wizard=wizard.id, editing=wizard.is_editing)
        return wizard

    def _release_abandoned_wizards(self):
        cutoff = self.now() - timedelta(minutes=WIZARD_IDLE_MINUTES)
        released = [wid for wid, touched in self._wizard_touched.items() if touched < cutoff]
        for wizard_id in released:
            self.close_wizard(wizard_id)
        while len(self.wizards) >= MAX_OPEN_WIZARDS:
            oldest = min(self._wizard_touched, key=self._wizard_touched.get)
            released.append(oldest)
            self.close_wizard(oldest)
        if released:
            logger.info("Abandoned wizards released", count=len(released))

    def get_wizard(self, wizard_id: str) -> WorkoutWizard:
        with self._lock:
            wizard = self.wizards.get(wizard_id)
            if wizard is None:
                raise NotFoundError(f"Wizard not found: {wizard_id}")
            self._wizard_touched[wizard_id] = self.now()
        return wizard

    def close_wizard(self, wizard_id: str) -> bool:
        """Cancel and forget a wizard. Late assist responses are dropped."""
        with self._lock:
            wizard = self.wizards.pop(wizard_id, None)
            self._wizard_touched.pop(wizard_id, None)
        if wizard is None:
            return False
        wizard.cancel()
        return True

    def wizard_set_text(self, wizard_id: str, field_name: str, value: str):
        """Update a text field, expanding zone shortcuts with the athlete's paces."""
        wizard = self.get_wizard(wizard_id)
        student = self.students.get(wizard.draft.student_id)
        wizard.set_text(field_name, value, student.speed_zones if student else None)
        return wizard

    def wizard_assist(self, wizard_id: str) -> WorkoutWizard:
        """
        Ask the generative model for the main block of the open workout.

        Raises:
            AssistBusyError: If an assist for this wizard is already running
        """
        wizard = self.get_wizard(wizard_id)
        ticket = wizard.begin_assist()
        student = self.students.get(wizard.draft.student_id)
        level = student.level if student else 'Intermediate'
        text = self.gemini.draft_description(wizard.draft.title, level)
        wizard.finish_assist(ticket, text)
        return wizard

    def submit_wizard(self, wizard_id: str) -> Workout:
        """
        Publish the wizard's workout and close the wizard.

        Raises:
            WizardValidationError: If athlete or week is missing
            NotFoundError: If the workout being edited was deleted meanwhile
        """
        wizard = self.get_wizard(wizard_id)
        workout = wizard.submit()
        with self._lock:
            self.wizards.pop(wizard_id, None)
            self._wizard_touched.pop(wizard_id, None)
        if wizard.is_editing:
            if not self.workouts.replace(workout):
                raise NotFoundError(f"Workout not found: {workout.id}")
        else:
            self.workouts.add(workout)
        return workout

    def delete_from_wizard(self, wizard_id: str) -> bool:
        """Delete the workout being edited and close the wizard."""
        wizard = self.get_wizard(wizard_id)
        removed = self.workouts.remove(wizard.draft.id) if wizard.is_editing else False
        self.close_wizard(wizard_id)
        return removed

    # === Athlete portal ===

    def portal_tabs(self, student_id: str) -> Dict[str, Dict]:
        """Pending workouts split into the three week tabs."""
        buckets = bucket_workouts(self.workouts_for(student_id), self.today())
        return {
            key: {'label': WEEK_TAB_LABELS[key], 'workouts': buckets[key]}
            for key in (WEEK_CURRENT, WEEK_FUTURE, WEEK_PAST)
        }

    def current_week(self) -> str:
        return week_anchor_str(self.today())

    def history(self, student_id: str) -> List[Workout]:
        """Completed workouts, most recently completed first."""
        done = [w for w in self.workouts_for(student_id) if w.is_completed]
        return sorted(done, key=lambda w: w.feedback.completed_at, reverse=True)

    def submit_feedback(self, student_id: str, workout_id: str, difficulty,
                        notes: str = '') -> Workout:
        """
        Record the athlete's feedback; the workout moves to history.

        Raises:
            FeedbackValidationError: If difficulty is not an integer in 1..10
            NotFoundError: If the workout does not belong to the student
        """
        try:
            difficulty = int(difficulty)
        except (TypeError, ValueError):
            raise FeedbackValidationError(f"Invalid difficulty: {difficulty}")
        if not FEEDBACK_DIFFICULTY_MIN <= difficulty <= FEEDBACK_DIFFICULTY_MAX:
            raise FeedbackValidationError(
                f"Difficulty must be between {FEEDBACK_DIFFICULTY_MIN} and {FEEDBACK_DIFFICULTY_MAX}"
            )

        workout = self.workouts.get(workout_id)
        if workout is None or workout.student_id != student_id:
            raise NotFoundError(f"Workout not found: {workout_id}")

        feedback = WorkoutFeedback(
            difficulty=difficulty,
            notes=notes or '',
            completed_at=self.now().isoformat(timespec='seconds'),
        )
        self.workouts.set_feedback(workout_id, feedback)
        return self.workouts.get(workout_id)

    def export_to_watch(self, student_id: str, workout_id: str) -> str:
        """
        Rewrite a running workout as step-by-step watch instructions.

        Only one export per athlete runs at a time.

        Raises:
            NotFoundError: If the workout does not belong to the student
            AssistBusyError: If an export for this athlete is already running
        """
        workout = self.workouts.get(workout_id)
        if workout is None or workout.student_id != student_id:
            raise NotFoundError(f"Workout not found: {workout_id}")
        with self._lock:
            if student_id in self._exports_in_flight:
                raise AssistBusyError("Export already in progress")
            self._exports_in_flight.add(student_id)

        try:
            student = self.students.get(student_id)
            return self.gemini.structure_for_watch(
                workout.description,
                workout.warmup_text or '',
                workout.cooldown_text or '',
                student.speed_zones if student else None,
            )
        finally:
            with self._lock:
                self._exports_in_flight.discard(student_id)
