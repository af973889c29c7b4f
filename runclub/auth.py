#!/usr/bin/env python3
"""
Login for the coach and the athletes.

The coach has a single account from config. Athletes log in with the e-mail
and password the coach enrolled them with; the first login of an unverified
athlete asks for the verification code before the session is opened.

A session only remembers who is logged in and in which role. Status,
verification and name are always read from the live student record.
"""

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from . import logger
from .config_loader import get_config
from .constants import ROLE_COACH, ROLE_STUDENT
from .models import SessionUser, Student


class LoginOutcome(Enum):
    SUCCESS = 'SUCCESS'
    VERIFY = 'VERIFY'
    FAILED = 'FAILED'


@dataclass
class LoginResult:
    outcome: LoginOutcome
    user: Optional[SessionUser] = None
    pending_student_id: Optional[str] = None


def _matches(given: str, expected: str) -> bool:
    if not given or not expected:
        return False
    return secrets.compare_digest(given.encode('utf-8'), expected.encode('utf-8'))


def coach_user() -> SessionUser:
    return SessionUser(id=get_config().get('auth.coach_id', 'c1'), role=ROLE_COACH)


def authenticate(email: str, password: str, students: Iterable[Student]) -> LoginResult:
    """
    Check credentials against the coach account, then the enrolled students.

    Returns:
        LoginResult with SUCCESS and a session user, VERIFY and the pending
        student's id, or FAILED
    """
    config = get_config()
    email = (email or '').strip()

    if _matches(email, config.get('auth.coach_email', '')) and \
            _matches(password, config.get('auth.coach_password', '')):
        logger.info("Coach logged in")
        return LoginResult(LoginOutcome.SUCCESS, user=coach_user())

    for student in students:
        if student.email == email and _matches(password, student.password):
            if not student.is_verified:
                logger.info("Student login pending verification", student=student.id)
                return LoginResult(LoginOutcome.VERIFY, pending_student_id=student.id)
            logger.info("Student logged in", student=student.id)
            return LoginResult(LoginOutcome.SUCCESS,
                               user=SessionUser(id=student.id, role=ROLE_STUDENT))

    logger.warning("Login failed")
    return LoginResult(LoginOutcome.FAILED)


def check_verification_code(code: str) -> bool:
    """Compare against the fixed verification code from config."""
    return _matches((code or '').strip(), str(get_config().get('auth.verification_code', '')))
