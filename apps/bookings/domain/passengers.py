"""
Passenger Validation

Pure validation of a booking's passenger list: party size, adult/infant
composition, per-passenger age range and the CPF identity document checksum.
Nothing here touches the database, so the rules can be evaluated before a
booking row exists.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.base import ValueObject
from shared.domain.errors import PassengerValidationError

MIN_AGE = 0
MAX_AGE = 120

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class PassengerData(ValueObject):
    """A passenger as submitted for a booking"""
    first_name: str
    last_name: str
    email: str
    phone: str
    document: str
    birth_date: date

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class CompositionRules(ValueObject):
    """
    Thresholds for party composition

    Adults are passengers aged ``adult_min_age`` or older. Infants are
    strictly younger than ``infant_max_age``.
    """
    max_passengers: int = 9
    adult_min_age: int = 12
    infant_max_age: int = 2

    @classmethod
    def from_settings(cls) -> 'CompositionRules':
        return cls(
            max_passengers=getattr(settings, 'BOOKINGS_MAX_PASSENGERS', cls.max_passengers),
            adult_min_age=getattr(settings, 'BOOKINGS_ADULT_MIN_AGE', cls.adult_min_age),
            infant_max_age=getattr(settings, 'BOOKINGS_INFANT_MAX_AGE', cls.infant_max_age),
        )

    def is_adult(self, age: int) -> bool:
        return age >= self.adult_min_age

    def is_infant(self, age: int) -> bool:
        return 0 <= age < self.infant_max_age


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    """
    Whole years elapsed between ``birth_date`` and ``today``

    The year difference is decremented when this year's birthday has not
    happened yet, e.g. born 1995-01-16, as of 2025-01-15 -> 29.
    A birth date in the future yields a negative age.
    """
    today = today or timezone.localdate()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def _cpf_check_digit(digits: List[int]) -> int:
    weight = len(digits) + 1
    total = sum(d * w for d, w in zip(digits, range(weight, 1, -1)))
    remainder = 11 - (total % 11)
    return 0 if remainder >= 10 else remainder


def is_valid_cpf(value: str) -> bool:
    """
    Validate a Brazilian CPF number

    Non-digits are stripped. Exactly 11 digits are required, sequences of a
    single repeated digit are rejected and both mod-11 check digits must
    match (weights 10..2 over the first nine digits, then 11..2 over ten).
    """
    if not value:
        return False
    digits = [int(ch) for ch in _NON_DIGITS.sub("", str(value))]
    if len(digits) != 11:
        return False
    if len(set(digits)) == 1:
        return False
    if _cpf_check_digit(digits[:9]) != digits[9]:
        return False
    return _cpf_check_digit(digits[:10]) == digits[10]


def validate_passengers(
    passengers: Iterable[PassengerData],
    today: Optional[date] = None,
    rules: Optional[CompositionRules] = None,
) -> List[str]:
    """
    Return every validation error for the passenger list

    An empty result means the list is acceptable. Per-passenger messages
    are prefixed with the passenger's 1-based position.
    """
    passengers = list(passengers)
    rules = rules or CompositionRules.from_settings()
    today = today or timezone.localdate()
    errors: List[str] = []

    if not passengers:
        return ["At least one passenger is required"]

    if len(passengers) > rules.max_passengers:
        errors.append(f"A booking allows at most {rules.max_passengers} passengers")

    adults = 0
    infants = 0
    for position, passenger in enumerate(passengers, start=1):
        age = calculate_age(passenger.birth_date, today)
        if age < MIN_AGE or age > MAX_AGE:
            errors.append(
                f"Passenger {position}: age must be between {MIN_AGE} and {MAX_AGE}"
            )
        elif rules.is_adult(age):
            adults += 1
        elif rules.is_infant(age):
            infants += 1

        if not is_valid_cpf(passenger.document):
            errors.append(f"Passenger {position}: invalid CPF document")

    if adults == 0:
        errors.append("At least one adult required")
    elif infants > adults:
        errors.append(
            f"Infants ({infants}) must not outnumber adults ({adults})"
        )

    return errors


def ensure_valid_passengers(
    passengers: Iterable[PassengerData],
    today: Optional[date] = None,
    rules: Optional[CompositionRules] = None,
) -> None:
    errors = validate_passengers(passengers, today=today, rules=rules)
    if errors:
        raise PassengerValidationError(errors)
