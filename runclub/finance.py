#!/usr/bin/env python3
"""
Student enrolment and payments.

There is no real gateway behind these functions: a card checkout is
approved on the spot, a Pix checkout only hands out the copy-and-paste
code, and the coach can register payments received by other means.
Payment records are immutable and are always prepended to the history.
"""

import random
import string
from datetime import date
from typing import Dict, Iterable, Optional

from . import logger
from .config_loader import get_config
from .constants import (
    CARD_TRANSACTION_PREFIX,
    DEFAULT_PLAN_VALUE,
    DEFAULT_STUDENT_LEVEL,
    DEFAULT_STUDENT_PASSWORD,
    MANUAL_TRANSACTION_PREFIX,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHODS,
    PAYMENT_STATUS_PAID,
    STATUS_ACTIVE,
    STUDENT_LEVELS,
)
from .errors import PaymentValidationError, StudentValidationError
from .models import PaymentRecord, Student, generate_id


def _transaction_id(prefix: str, length: int) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return prefix + ''.join(random.choice(alphabet) for _ in range(length))


def default_plan_value() -> float:
    return float(get_config().get('finance.default_plan_value', DEFAULT_PLAN_VALUE))


def parse_plan_value(value) -> float:
    """
    Monthly plan value from a form field.

    Raises:
        StudentValidationError: If the value is not a number greater than zero
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise StudentValidationError(f"Invalid plan value: {value}")
    if value <= 0:
        raise StudentValidationError("Plan value must be greater than zero")
    return value


def new_student(name: str, email: str, password: str = '', level: str = DEFAULT_STUDENT_LEVEL,
                payment_due_date: Optional[str] = None,
                plan_value: Optional[float] = None) -> Student:
    """
    Build a student from the enrolment form.

    New students start active and unverified, with an empty payment history.

    Raises:
        StudentValidationError: If name or e-mail is missing, level unknown
            or plan value invalid
    """
    name = str(name or '').strip()
    email = str(email or '').strip()
    if not name or not email:
        raise StudentValidationError("Name and email are required")
    if level not in STUDENT_LEVELS:
        raise StudentValidationError(f"Invalid level: {level}")
    if plan_value in (None, ''):
        plan_value = default_plan_value()
    else:
        plan_value = parse_plan_value(plan_value)

    return Student(
        id=generate_id(),
        name=name,
        email=email,
        password=password or DEFAULT_STUDENT_PASSWORD,
        level=level,
        payment_due_date=payment_due_date or date.today().isoformat(),
        status=STATUS_ACTIVE,
        is_verified=False,
        payment_history=[],
        plan_value=plan_value,
    )


def manual_payment(amount: float, payment_date: Optional[str] = None,
                   method: str = PAYMENT_METHOD_CASH) -> PaymentRecord:
    """
    Payment the coach received outside the app (cash, transfer...).

    Raises:
        PaymentValidationError: If amount is not positive or method unknown
    """
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise PaymentValidationError(f"Invalid amount: {amount}")
    if amount <= 0:
        raise PaymentValidationError("Amount must be greater than zero")
    if method not in PAYMENT_METHODS:
        raise PaymentValidationError(f"Invalid payment method: {method}")

    return PaymentRecord(
        id=generate_id(),
        date=payment_date or date.today().isoformat(),
        amount=amount,
        method=method,
        status=PAYMENT_STATUS_PAID,
        transaction_id=_transaction_id(MANUAL_TRANSACTION_PREFIX, 5),
    )


def card_checkout(student: Student, today: Optional[date] = None) -> PaymentRecord:
    """Simulated card approval for the student's monthly plan."""
    payment = PaymentRecord(
        id=generate_id(),
        date=(today or date.today()).isoformat(),
        amount=student.plan_value or default_plan_value(),
        method=PAYMENT_METHOD_CARD,
        status=PAYMENT_STATUS_PAID,
        transaction_id=_transaction_id(CARD_TRANSACTION_PREFIX, 6),
    )
    logger.info("Card payment approved", student=student.id, amount=payment.amount)
    return payment


def pix_checkout() -> Dict[str, str]:
    """Pix copy-and-paste details. Nothing is recorded until the coach confirms."""
    config = get_config()
    return {
        'pixKey': config.get('finance.pix_key', ''),
        'pixCode': config.get('finance.pix_code', ''),
    }


def monthly_recurring_revenue(students: Iterable[Student]) -> float:
    """Sum of every student's plan value."""
    return sum((s.plan_value or DEFAULT_PLAN_VALUE) for s in students)


def total_balance(students: Iterable[Student]) -> float:
    """Sum of every payment ever recorded."""
    return sum(p.amount for s in students for p in s.payment_history)
