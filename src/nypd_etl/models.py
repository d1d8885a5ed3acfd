"""Typed officer records produced by the normalizer.

Every attribute has a well-defined sentinel so a record can always be built,
even from a partial or malformed detail payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple

UNKNOWN_YEAR = -1
UNKNOWN_DAY = -1
UNKNOWN_MARKER = "ERROR_UNKNOWN"
UNKNOWN_FIRST_NAME = UNKNOWN_MARKER
UNKNOWN_LAST_NAME = UNKNOWN_MARKER
UNKNOWN_COMMAND = UNKNOWN_MARKER


class Month(IntEnum):
    UNKNOWN = -1
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12


class Rank(Enum):
    """Officer rank, roughly sorted from lowest to highest."""

    UNKNOWN = UNKNOWN_MARKER
    POLICE_OFFICER = "POLICE_OFFICER"
    DETECTIVE_3 = "DETECTIVE_3"
    DETECTIVE_2 = "DETECTIVE_2"
    DETECTIVE_1 = "DETECTIVE_1"
    DETECTIVE_SPECIALIST = "DETECTIVE_SPECIALIST"
    SERGEANT_SPECIAL = "SERGEANT_SPECIAL"
    SERGEANT_DET = "SERGEANT_DET"
    SERGEANT = "SERGEANT"
    LIEUTENANT_DET_COMMANDER = "LIEUTENANT_DET_COMMANDER"
    LIEUTENANT_SPECIAL = "LIEUTENANT_SPECIAL"
    LIEUTENANT = "LIEUTENANT"
    CAPTAIN = "CAPTAIN"
    DEPUTY_INSPECTOR = "DEPUTY_INSPECTOR"
    INSPECTOR = "INSPECTOR"
    DEPUTY_CHIEF = "DEPUTY_CHIEF"
    ASSISTANT_CHIEF = "ASSISTANT_CHIEF"
    CHIEF_COMMUNITY_AFFAIRS = "CHIEF_COMMUNITY_AFFAIRS"
    CHIEF_CRIME_CNTRL_STRATEGIES = "CHIEF_CRIME_CNTRL_STRATEGIES"
    CHIEF_DEPARTMENT = "CHIEF_DEPARTMENT"
    CHIEF_DETECTIVES = "CHIEF_DETECTIVES"
    CHIEF_HOUSING = "CHIEF_HOUSING"
    CHIEF_INTELLIGENCE = "CHIEF_INTELLIGENCE"
    CHIEF_LABOR_REL = "CHIEF_LABOR_REL"
    CHIEF_OPERATIONS = "CHIEF_OPERATIONS"
    CHIEF_PATROL = "CHIEF_PATROL"
    CHIEF_PERSONNEL = "CHIEF_PERSONNEL"
    CHIEF_SPECIAL_OPERATIONS = "CHIEF_SPECIAL_OPERATIONS"
    CHIEF_TRAINING = "CHIEF_TRAINING"
    CHIEF_TRANSIT = "CHIEF_TRANSIT"
    CHIEF_TRANSPORTATION = "CHIEF_TRANSPORTATION"


class Ethnicity(Enum):
    """The five ethnicity categories NYPD reports."""

    UNKNOWN = UNKNOWN_MARKER
    ASIAN = "ASIAN"
    BLACK = "BLACK"
    HISPANIC = "HISPANIC"
    NATIVE_AMERICAN = "NATIVE_AMERICAN"
    WHITE = "WHITE"


@dataclass(frozen=True)
class Name:
    first: str
    last: str
    middle_initial: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"first": self.first}
        if self.middle_initial is not None:
            out["middleInitial"] = self.middle_initial
        out["last"] = self.last
        return out


@dataclass(frozen=True)
class StructuredDate:
    year: int
    month: Month
    day: int

    def sort_key(self) -> Tuple[int, int, int]:
        return (self.year, int(self.month), self.day)

    def to_dict(self) -> Dict[str, int]:
        return {"year": self.year, "month": int(self.month), "day": self.day}


UNKNOWN_DATE = StructuredDate(UNKNOWN_YEAR, Month.UNKNOWN, UNKNOWN_DAY)
UNKNOWN_NAME = Name(first=UNKNOWN_FIRST_NAME, last=UNKNOWN_LAST_NAME)


@dataclass(frozen=True)
class RankHistoryEntry:
    effective_date: StructuredDate
    rank: Rank
    shield_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "effectiveDate": self.effective_date.to_dict(),
            "rank": self.rank.value,
        }
        if self.shield_number is not None:
            out["shieldNumber"] = self.shield_number
        return out


@dataclass(frozen=True)
class Officer:
    id: int
    name: Name
    rank: Rank
    appointment_date: StructuredDate
    command: str
    assignment_date: StructuredDate
    ethnicity: Ethnicity
    shield_number: Optional[int] = None
    rank_history: Tuple[RankHistoryEntry, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name.to_dict(),
            "rank": self.rank.value,
            "appointmentDate": self.appointment_date.to_dict(),
            "command": self.command,
            "assignmentDate": self.assignment_date.to_dict(),
            "ethnicity": self.ethnicity.value,
        }
        if self.shield_number is not None:
            out["shieldNumber"] = self.shield_number
        out["rankHistory"] = [entry.to_dict() for entry in self.rank_history]
        return out
