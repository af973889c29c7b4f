#!/usr/bin/env python3
"""
Hybrid Running Club Web App

Flask JSON API for the coach's back office and the athletes' portal.
"""

import os
import secrets
from functools import wraps

from flask import Flask, current_app, jsonify, request, session
from flask_wtf.csrf import CSRFProtect, generate_csrf

from runclub import logger
from runclub.auth import LoginOutcome
from runclub.club_state import ClubState
from runclub.config_loader import get_config
from runclub.constants import EXERCISE_FILTER_ALL, ROLE_COACH, ROLE_STUDENT
from runclub.errors import (
    AssistBusyError,
    ClubError,
    NotFoundError,
    WizardClosedError,
    WizardStepError,
    WizardValidationError,
)
from runclub.models import SessionUser

app = Flask(__name__)

# =============================================================================
# SECURITY CONFIGURATION
# =============================================================================

# Secret key - MUST be set in production
_secret_key = os.environ.get('SECRET_KEY')
if not _secret_key:
    if os.environ.get('FLASK_ENV') == 'production':
        raise RuntimeError("SECRET_KEY environment variable is required in production")
    _secret_key = secrets.token_hex(32)  # Generate random key for dev
    logger.warning("Using randomly generated SECRET_KEY. Set SECRET_KEY env var for production.")
app.secret_key = _secret_key

# CSRF Protection
csrf = CSRFProtect(app)

logger.get_logger().configure(level=get_config().get('logging.level', 'INFO'))


# Security headers
@app.after_request
def set_security_headers(response):
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    if os.environ.get('FLASK_ENV') == 'production':
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# =============================================================================
# CLUB STATE
# =============================================================================

def get_club() -> ClubState:
    """The club held by this app; seeded on first use."""
    club = current_app.extensions.get('club')
    if club is None:
        club = ClubState.from_seed()
        current_app.extensions['club'] = club
    return club


def set_club(club: ClubState):
    """Swap the club state (tests start from a known club)."""
    app.extensions['club'] = club


# =============================================================================
# AUTHENTICATION
# =============================================================================

def session_user():
    """Identity stored in the session, or None."""
    user_id = session.get('user_id')
    role = session.get('role')
    if not user_id or not role:
        return None
    return SessionUser(id=user_id, role=role)


def login_session(user: SessionUser):
    session.clear()
    session['user_id'] = user.id
    session['role'] = user.role
    session.permanent = True


def require_auth(f):
    """Decorator to require a logged-in user on routes."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if session_user() is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)
    return decorated


def require_role(role: str):
    """Decorator to restrict a route to the coach or to athletes."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = session_user()
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role != role:
                return jsonify({"error": "Forbidden"}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


require_coach = require_role(ROLE_COACH)
require_student = require_role(ROLE_STUDENT)


def json_body() -> dict:
    """Request JSON object; anything else (missing, malformed, a list) reads as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.before_request
def bind_log_context():
    """Tag log lines of this request with the acting user."""
    fields = {'route': request.endpoint}
    if session.get('user_id'):
        fields.update(user=session['user_id'], role=session.get('role'))
    logger.clear_context()
    logger.bind_context(**fields)


@app.teardown_request
def clear_log_context(exc):
    logger.clear_context()


# =============================================================================
# AUTH ROUTES
# =============================================================================

@app.route('/api/csrf-token')
def csrf_token():
    """Token for JSON clients to send back as X-CSRFToken."""
    return jsonify({"csrfToken": generate_csrf()})


@app.route('/api/login', methods=['POST'])
def login():
    """Log in the coach or an athlete."""
    data = json_body()
    result = get_club().login(data.get('email', ''), data.get('password', ''))

    if result.outcome == LoginOutcome.SUCCESS:
        login_session(result.user)
        return jsonify({"outcome": result.outcome.value,
                        "user": get_club().current_user(result.user)})

    if result.outcome == LoginOutcome.VERIFY:
        session.clear()
        session['pending_student_id'] = result.pending_student_id
        return jsonify({"outcome": result.outcome.value})

    return jsonify({"outcome": result.outcome.value, "error": "Invalid credentials"}), 401


@app.route('/api/verify', methods=['POST'])
def verify():
    """Finish an athlete's first login with the verification code."""
    pending_id = session.get('pending_student_id')
    if not pending_id:
        return jsonify({"error": "No login pending verification"}), 400

    user = get_club().verify(pending_id, json_body().get('code', ''))
    if user is None:
        return jsonify({"error": "Invalid verification code"}), 401

    login_session(user)
    return jsonify({"outcome": LoginOutcome.SUCCESS.value,
                    "user": get_club().current_user(user)})


@app.route('/api/logout', methods=['POST'])
def logout():
    """Logout and clear session."""
    session.clear()
    return jsonify({"success": True})


@app.route('/api/me')
@require_auth
def me():
    """Logged-in user, read from the live records."""
    view = get_club().current_user(session_user())
    if view is None:
        session.clear()
        return jsonify({"error": "Authentication required"}), 401
    return jsonify(view)


# =============================================================================
# STUDENTS & FINANCE (coach)
# =============================================================================

@app.route('/api/students')
@require_coach
def list_students():
    return jsonify([s.to_dict() for s in get_club().students])


@app.route('/api/students', methods=['POST'])
@require_coach
def create_student():
    """Enrol a student."""
    data = json_body()
    fields = {
        'password': data.get('password', ''),
        'payment_due_date': data.get('paymentDueDate') or None,
        'plan_value': data.get('planValue'),
    }
    if data.get('level'):
        fields['level'] = data['level']
    student = get_club().add_student(data.get('name', ''), data.get('email', ''), **fields)
    return jsonify(student.to_dict()), 201


@app.route('/api/students/<student_id>')
@require_coach
def get_student(student_id: str):
    return jsonify(get_club().require_student(student_id).to_dict())


# JSON field -> Student attribute for partial updates
STUDENT_UPDATE_FIELDS = {
    'name': 'name',
    'email': 'email',
    'level': 'level',
    'paymentDueDate': 'payment_due_date',
    'status': 'status',
    'planValue': 'plan_value',
}


@app.route('/api/students/<student_id>', methods=['PATCH'])
@require_coach
def update_student(student_id: str):
    """Partial update of a student record."""
    data = json_body()
    updates = {attr: data[key] for key, attr in STUDENT_UPDATE_FIELDS.items() if key in data}
    if not get_club().update_student(student_id, **updates):
        raise NotFoundError(f"Student not found: {student_id}")
    return jsonify(get_club().get_student(student_id).to_dict())


@app.route('/api/students/<student_id>/zones', methods=['PUT'])
@require_coach
def update_speed_zones(student_id: str):
    """Replace the athlete's pace per zone."""
    if not get_club().set_speed_zones(student_id, json_body()):
        raise NotFoundError(f"Student not found: {student_id}")
    return jsonify(get_club().get_student(student_id).to_dict())


@app.route('/api/students/<student_id>/payments', methods=['POST'])
@require_coach
def register_payment(student_id: str):
    """Register a payment received outside the app."""
    data = json_body()
    payment = get_club().register_manual_payment(
        student_id, data.get('amount'), data.get('date') or None, data.get('method') or None,
    )
    return jsonify(payment.to_dict()), 201


@app.route('/api/students/<student_id>/workouts')
@require_coach
def student_workouts(student_id: str):
    """Coach dashboard: the athlete's workouts grouped by week."""
    club = get_club()
    club.require_student(student_id)
    groups = club.dashboard_groups(student_id)
    return jsonify([
        {"week": label, "workouts": [w.to_dict() for w in workouts]}
        for label, workouts in groups.items()
    ])


@app.route('/api/finance')
@require_coach
def finance():
    return jsonify(get_club().finance_summary())


# =============================================================================
# WORKOUTS & WIZARD (coach)
# =============================================================================

@app.route('/api/workouts/<workout_id>', methods=['DELETE'])
@require_coach
def delete_workout(workout_id: str):
    if not get_club().remove_workout(workout_id):
        raise NotFoundError(f"Workout not found: {workout_id}")
    return jsonify({"success": True})


@app.route('/api/weeks')
@require_coach
def weeks():
    """Weeks offered by the wizard's second step."""
    return jsonify(get_club().nearby_weeks())


@app.route('/api/wizards', methods=['POST'])
@require_coach
def open_wizard():
    """Open a blank wizard, optionally for one athlete, or edit a workout."""
    data = json_body()
    wizard = get_club().open_wizard(
        initial_student_id=data.get('studentId', ''),
        workout_id=data.get('workoutId') or None,
    )
    return jsonify(wizard.to_dict()), 201


@app.route('/api/wizards/<wizard_id>')
@require_coach
def get_wizard(wizard_id: str):
    return jsonify(get_club().get_wizard(wizard_id).to_dict())


@app.route('/api/wizards/<wizard_id>', methods=['DELETE'])
@require_coach
def cancel_wizard(wizard_id: str):
    if not get_club().close_wizard(wizard_id):
        raise NotFoundError(f"Wizard not found: {wizard_id}")
    return jsonify({"success": True})


@app.route('/api/wizards/<wizard_id>/athlete', methods=['POST'])
@require_coach
def wizard_athlete(wizard_id: str):
    club = get_club()
    student_id = json_body().get('studentId', '')
    if student_id:
        club.require_student(student_id)
    wizard = club.get_wizard(wizard_id)
    wizard.select_athlete(student_id)
    return jsonify(wizard.to_dict())


@app.route('/api/wizards/<wizard_id>/week', methods=['POST'])
@require_coach
def wizard_week(wizard_id: str):
    """Pick an offered week ('date') or any day ('customDate')."""
    data = json_body()
    wizard = get_club().get_wizard(wizard_id)
    if 'customDate' in data:
        if not wizard.select_custom_date(data['customDate']):
            raise WizardValidationError([f"Invalid date: {data['customDate']}"])
    else:
        wizard.select_week(data.get('date', ''))
    return jsonify(wizard.to_dict())


@app.route('/api/wizards/<wizard_id>/type', methods=['POST'])
@require_coach
def wizard_type(wizard_id: str):
    wizard = get_club().get_wizard(wizard_id)
    wizard.select_type(json_body().get('type', ''))
    return jsonify(wizard.to_dict())


@app.route('/api/wizards/<wizard_id>/back', methods=['POST'])
@require_coach
def wizard_back(wizard_id: str):
    wizard = get_club().get_wizard(wizard_id)
    wizard.back()
    return jsonify(wizard.to_dict())


# JSON field -> wizard text field
WIZARD_TEXT_FIELDS = {
    'warmupText': 'warmup_text',
    'description': 'description',
    'cooldownText': 'cooldown_text',
}


@app.route('/api/wizards/<wizard_id>/details', methods=['PATCH'])
@require_coach
def wizard_details(wizard_id: str):
    """Update title and texts on the last step."""
    club = get_club()
    data = json_body()
    wizard = club.get_wizard(wizard_id)
    if 'title' in data:
        wizard.set_title(data['title'])
    for key, field_name in WIZARD_TEXT_FIELDS.items():
        if key in data:
            club.wizard_set_text(wizard_id, field_name, data[key])
    return jsonify(wizard.to_dict())


@app.route('/api/wizards/<wizard_id>/exercises', methods=['POST'])
@require_coach
def wizard_toggle_exercise(wizard_id: str):
    data = json_body()
    wizard = get_club().get_wizard(wizard_id)
    wizard.toggle_exercise(data.get('picker', ''), data.get('exerciseId', ''))
    return jsonify(wizard.to_dict())


@app.route('/api/wizards/<wizard_id>/assist', methods=['POST'])
@require_coach
def wizard_assist(wizard_id: str):
    """Draft the main block with the generative model."""
    return jsonify(get_club().wizard_assist(wizard_id).to_dict())


@app.route('/api/wizards/<wizard_id>/submit', methods=['POST'])
@require_coach
def wizard_submit(wizard_id: str):
    workout = get_club().submit_wizard(wizard_id)
    return jsonify(workout.to_dict()), 201


@app.route('/api/wizards/<wizard_id>/workout', methods=['DELETE'])
@require_coach
def wizard_delete_workout(wizard_id: str):
    """Delete the workout being edited and close the wizard."""
    if not get_club().delete_from_wizard(wizard_id):
        raise NotFoundError("No workout to delete")
    return jsonify({"success": True})


# =============================================================================
# EXERCISE LIBRARY
# =============================================================================

@app.route('/api/exercises')
@require_auth
def list_exercises():
    category = request.args.get('category', EXERCISE_FILTER_ALL)
    return jsonify([e.to_dict() for e in get_club().list_exercises(category)])


@app.route('/api/exercises', methods=['POST'])
@require_coach
def create_exercise():
    data = json_body()
    exercise = get_club().save_exercise(
        data.get('title', ''), data.get('videoUrl', ''),
        data.get('description', ''), data.get('category') or None,
    )
    return jsonify(exercise.to_dict()), 201


@app.route('/api/exercises/<exercise_id>', methods=['PUT'])
@require_coach
def update_exercise(exercise_id: str):
    data = json_body()
    exercise = get_club().save_exercise(
        data.get('title', ''), data.get('videoUrl', ''),
        data.get('description', ''), data.get('category') or None,
        exercise_id=exercise_id,
    )
    return jsonify(exercise.to_dict())


@app.route('/api/exercises/<exercise_id>', methods=['DELETE'])
@require_coach
def delete_exercise(exercise_id: str):
    if not get_club().remove_exercise(exercise_id):
        raise NotFoundError(f"Exercise not found: {exercise_id}")
    return jsonify({"success": True})


# =============================================================================
# ATHLETE PORTAL
# =============================================================================

@app.route('/api/portal/workouts')
@require_student
def portal_workouts():
    """Pending workouts in this week / upcoming / previous tabs."""
    club = get_club()
    tabs = club.portal_tabs(session_user().id)
    return jsonify({
        "currentWeek": club.current_week(),
        "tabs": {
            key: {"label": tab['label'], "workouts": [w.to_dict() for w in tab['workouts']]}
            for key, tab in tabs.items()
        },
    })


@app.route('/api/portal/history')
@require_student
def portal_history():
    return jsonify([w.to_dict() for w in get_club().history(session_user().id)])


@app.route('/api/portal/workouts/<workout_id>/feedback', methods=['POST'])
@require_student
def portal_feedback(workout_id: str):
    data = json_body()
    workout = get_club().submit_feedback(
        session_user().id, workout_id, data.get('difficulty'), data.get('notes', ''),
    )
    return jsonify(workout.to_dict())


@app.route('/api/portal/workouts/<workout_id>/export', methods=['POST'])
@require_student
def portal_export(workout_id: str):
    """Step-by-step text for the athlete's watch."""
    text = get_club().export_to_watch(session_user().id, workout_id)
    return jsonify({"workoutId": workout_id, "text": text})


@app.route('/api/portal/payments')
@require_student
def portal_payments():
    student = get_club().require_student(session_user().id)
    return jsonify([p.to_dict() for p in student.payment_history])


@app.route('/api/portal/checkout/card', methods=['POST'])
@require_student
def portal_card_checkout():
    payment = get_club().card_checkout(session_user().id)
    return jsonify(payment.to_dict()), 201


@app.route('/api/portal/checkout/pix')
@require_student
def portal_pix_checkout():
    return jsonify(get_club().pix_checkout(session_user().id))


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def club_error_status(error: ClubError) -> int:
    """HTTP status for a domain error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (WizardClosedError, WizardStepError, AssistBusyError)):
        return 409
    return 400


@app.errorhandler(ClubError)
def club_error(e):
    status = club_error_status(e)
    body = {"error": str(e)}
    if isinstance(e, WizardValidationError):
        body["errors"] = e.errors
    logger.info("Request rejected", path=request.path, status=status, error=type(e).__name__)
    return jsonify(body), status


@app.errorhandler(404)
def not_found(e):
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(500)
def server_error(e):
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    # Default to false in production, true only if explicitly set
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    app.run(host='0.0.0.0', port=port, debug=debug)
