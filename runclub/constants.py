#!/usr/bin/env python3
"""
Single source of truth for constants used across the club back office.

All shared constants should be defined here to avoid duplication.
"""

from typing import Dict, List


# === WORKOUT TYPES ===

WORKOUT_TYPE_RUNNING: str = 'RUNNING'
WORKOUT_TYPE_STRENGTH: str = 'STRENGTH'
WORKOUT_TYPE_ACTIVATION: str = 'ACTIVATION'

# Types a prescribed workout can have
WORKOUT_TYPES: List[str] = [WORKOUT_TYPE_RUNNING, WORKOUT_TYPE_STRENGTH]

# Categories an exercise in the video library can have
EXERCISE_CATEGORIES: List[str] = [WORKOUT_TYPE_STRENGTH, WORKOUT_TYPE_ACTIVATION]
EXERCISE_FILTER_ALL: str = 'ALL'

# Fallback title when the coach publishes without one
DEFAULT_WORKOUT_TITLES: Dict[str, str] = {
    WORKOUT_TYPE_RUNNING: 'Sessão de Corrida',
    WORKOUT_TYPE_STRENGTH: 'Sessão de Força',
}

# Text fields of a running workout where zone shortcuts (z1..z5) are expanded
ZONE_MACRO_FIELDS: List[str] = ['warmup_text', 'description', 'cooldown_text']


# === SPEED ZONES ===

ZONE_KEYS: List[str] = ['z1', 'z2', 'z3', 'z4', 'z5']


# === DATES ===
# Club weeks run Sunday-Saturday; Sunday is day 0

ISO_DATE_FORMAT: str = '%Y-%m-%d'
DISPLAY_DAY_MONTH_FORMAT: str = '%d/%m'


# === WEEK BUCKETS ===

WEEK_PAST: str = 'PAST'
WEEK_CURRENT: str = 'CURRENT'
WEEK_FUTURE: str = 'FUTURE'

# Portal tab labels (athlete facing)
WEEK_TAB_LABELS: Dict[str, str] = {
    WEEK_PAST: 'Anteriores',
    WEEK_CURRENT: 'Esta Semana',
    WEEK_FUTURE: 'Próximas Semanas',
}

# Weeks offered by the prescription wizard, relative to the current week
NEARBY_WEEK_OFFSETS: List[int] = [-1, 0, 1, 2, 3, 4]
UNDEFINED_WEEK_LABEL: str = 'Semana não definida'


# === STUDENTS ===

STUDENT_LEVELS: List[str] = ['Beginner', 'Intermediate', 'Advanced']
DEFAULT_STUDENT_LEVEL: str = 'Intermediate'
DEFAULT_STUDENT_PASSWORD: str = '123456'

STATUS_ACTIVE: str = 'active'
STATUS_INACTIVE: str = 'inactive'
STUDENT_STATUSES: List[str] = [STATUS_ACTIVE, STATUS_INACTIVE]

ROLE_COACH: str = 'COACH'
ROLE_STUDENT: str = 'STUDENT'


# === PAYMENTS ===

PAYMENT_METHODS: List[str] = ['Pix', 'Cartão', 'Dinheiro', 'Transferência']
PAYMENT_METHOD_CARD: str = 'Cartão'
PAYMENT_METHOD_CASH: str = 'Dinheiro'

PAYMENT_STATUS_PAID: str = 'Pago'

# Plan value used when a student has none set
DEFAULT_PLAN_VALUE: float = 150.0

MANUAL_TRANSACTION_PREFIX: str = 'MANUAL-'
CARD_TRANSACTION_PREFIX: str = 'TX-'


# === OPEN WIZARDS ===

# A wizard untouched for this long is cancelled when the next one opens
WIZARD_IDLE_MINUTES: int = 120
MAX_OPEN_WIZARDS: int = 20


# === FEEDBACK ===

FEEDBACK_DIFFICULTY_MIN: int = 1
FEEDBACK_DIFFICULTY_MAX: int = 10


# === IDENTIFIERS ===

GENERATED_ID_LENGTH: int = 9


# === GENERATIVE TEXT FALLBACKS ===

DRAFT_EMPTY_FALLBACK: str = 'Erro ao gerar.'
STRUCTURE_EMPTY_FALLBACK: str = 'Erro ao estruturar.'
API_ERROR_FALLBACK: str = 'Erro na API.'
