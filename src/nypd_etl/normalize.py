"""Field normalization for OIP detail payloads.

Detail entries carry their attributes as ``Columns``: a list of
``{"Id": <opaque column id>, "Value": <raw string>}`` pairs. The tables below
map the column ids we understand to attributes, and each attribute to a total
parser: a parser never raises, it returns a :class:`Parsed` holding the value
(or the attribute's sentinel) and an optional description of what was wrong
with the input.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .diagnostics import FIELD, ErrorSink
from .logging_utils import log_json
from .models import (
    UNKNOWN_COMMAND,
    UNKNOWN_DATE,
    UNKNOWN_DAY,
    UNKNOWN_NAME,
    UNKNOWN_YEAR,
    Ethnicity,
    Month,
    Name,
    Officer,
    Rank,
    RankHistoryEntry,
    StructuredDate,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 2100

NAME_RE = re.compile(r"^(?P<first>.+?)(?:\s+(?P<middle>[A-Za-z])\.?)?$")
DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+\d{1,2}:\d{2}:\d{2}\s*[AP]M)?$", re.IGNORECASE)
SHIELD_RE = re.compile(r"^\d+$")


class Parsed(NamedTuple):
    value: Any
    problem: Optional[str] = None


class Attribute(Enum):
    RANK = "rank"
    APPOINTMENT_DATE = "appointment_date"
    COMMAND = "command"
    ASSIGNMENT_DATE = "assignment_date"
    ETHNICITY = "ethnicity"
    SHIELD_NUMBER = "shield_number"
    EFFECTIVE_DATE = "effective_date"


# Placeholder column ids for each detail report. The live ids belong under
# `fields` in config.yaml, which replaces these tables (see field_table).
PROFILE_FIELDS: Dict[str, Attribute] = {
    "1F3B2B5E-3C2A-4E3A-9A38-0C2C2E7F6C01": Attribute.RANK,
    "A3F9B6B2-7C46-4B1F-8F3E-3F0F1C2D4E02": Attribute.APPOINTMENT_DATE,
    "C6E2D0A4-1B7F-4E9D-A2C5-6D8E9F0A1B03": Attribute.COMMAND,
    "E8D4C2B0-9A7F-4C3E-B1D2-8F7E6D5C4B04": Attribute.ASSIGNMENT_DATE,
    "0B1C2D3E-4F5A-4B6C-8D7E-9F0A1B2C3D05": Attribute.ETHNICITY,
    "2D3E4F5A-6B7C-4D8E-9F0A-1B2C3D4E5F06": Attribute.SHIELD_NUMBER,
}

RANK_HISTORY_FIELDS: Dict[str, Attribute] = {
    "7A1B2C3D-4E5F-4A6B-8C7D-1E2F3A4B5C11": Attribute.EFFECTIVE_DATE,
    "8B2C3D4E-5F6A-4B7C-9D8E-2F3A4B5C6D12": Attribute.RANK,
    "9C3D4E5F-6A7B-4C8D-AE9F-3A4B5C6D7E13": Attribute.SHIELD_NUMBER,
}

PROFILE_ATTRIBUTES: Tuple[Attribute, ...] = (
    Attribute.RANK,
    Attribute.APPOINTMENT_DATE,
    Attribute.COMMAND,
    Attribute.ASSIGNMENT_DATE,
    Attribute.ETHNICITY,
    Attribute.SHIELD_NUMBER,
)

# Keys are upper-cased, dot-free and whitespace-collapsed.
RANK_TITLES: Dict[str, Rank] = {
    "POLICE OFFICER": Rank.POLICE_OFFICER,
    "PO": Rank.POLICE_OFFICER,
    "DETECTIVE 3RD GRADE": Rank.DETECTIVE_3,
    "DETECTIVE THIRD GRADE": Rank.DETECTIVE_3,
    "DET 3RD GR": Rank.DETECTIVE_3,
    "DETECTIVE 2ND GRADE": Rank.DETECTIVE_2,
    "DETECTIVE SECOND GRADE": Rank.DETECTIVE_2,
    "DET 2ND GR": Rank.DETECTIVE_2,
    "DETECTIVE 1ST GRADE": Rank.DETECTIVE_1,
    "DETECTIVE FIRST GRADE": Rank.DETECTIVE_1,
    "DET 1ST GR": Rank.DETECTIVE_1,
    "DETECTIVE SPECIALIST": Rank.DETECTIVE_SPECIALIST,
    "DET SPEC": Rank.DETECTIVE_SPECIALIST,
    "SERGEANT SPECIAL ASSIGNMENT": Rank.SERGEANT_SPECIAL,
    "SERGEANT SPECIAL ASSIGN": Rank.SERGEANT_SPECIAL,
    "SGT SPECIAL ASSIGN": Rank.SERGEANT_SPECIAL,
    "SERGEANT DETECTIVE SQUAD": Rank.SERGEANT_DET,
    "SERGEANT DET SQD": Rank.SERGEANT_DET,
    "SGT DET SQUAD": Rank.SERGEANT_DET,
    "SERGEANT": Rank.SERGEANT,
    "SGT": Rank.SERGEANT,
    "LIEUTENANT DETECTIVE COMMANDER": Rank.LIEUTENANT_DET_COMMANDER,
    "LIEUTENANT DET COMMANDER": Rank.LIEUTENANT_DET_COMMANDER,
    "LT DET COMMANDER": Rank.LIEUTENANT_DET_COMMANDER,
    "LIEUTENANT SPECIAL ASSIGNMENT": Rank.LIEUTENANT_SPECIAL,
    "LIEUTENANT SPECIAL ASSIGN": Rank.LIEUTENANT_SPECIAL,
    "LT SPECIAL ASSIGN": Rank.LIEUTENANT_SPECIAL,
    "LIEUTENANT": Rank.LIEUTENANT,
    "LT": Rank.LIEUTENANT,
    "CAPTAIN": Rank.CAPTAIN,
    "CAPT": Rank.CAPTAIN,
    "DEPUTY INSPECTOR": Rank.DEPUTY_INSPECTOR,
    "INSPECTOR": Rank.INSPECTOR,
    "DEPUTY CHIEF": Rank.DEPUTY_CHIEF,
    "ASSISTANT CHIEF": Rank.ASSISTANT_CHIEF,
    "ASST CHIEF": Rank.ASSISTANT_CHIEF,
    "CHIEF OF COMMUNITY AFFAIRS": Rank.CHIEF_COMMUNITY_AFFAIRS,
    "CHIEF OF CRIME CONTROL STRATEGIES": Rank.CHIEF_CRIME_CNTRL_STRATEGIES,
    "CHIEF OF CRIME CNTRL STRATEGIES": Rank.CHIEF_CRIME_CNTRL_STRATEGIES,
    "CHIEF OF DEPARTMENT": Rank.CHIEF_DEPARTMENT,
    "CHIEF OF DEPT": Rank.CHIEF_DEPARTMENT,
    "CHIEF OF DETECTIVES": Rank.CHIEF_DETECTIVES,
    "CHIEF OF HOUSING": Rank.CHIEF_HOUSING,
    "CHIEF OF INTELLIGENCE": Rank.CHIEF_INTELLIGENCE,
    "CHIEF OF LABOR RELATIONS": Rank.CHIEF_LABOR_REL,
    "CHIEF OF LABOR REL": Rank.CHIEF_LABOR_REL,
    "CHIEF OF OPERATIONS": Rank.CHIEF_OPERATIONS,
    "CHIEF OF PATROL": Rank.CHIEF_PATROL,
    "CHIEF OF PERSONNEL": Rank.CHIEF_PERSONNEL,
    "CHIEF OF SPECIAL OPERATIONS": Rank.CHIEF_SPECIAL_OPERATIONS,
    "CHIEF OF TRAINING": Rank.CHIEF_TRAINING,
    "CHIEF OF TRANSIT": Rank.CHIEF_TRANSIT,
    "CHIEF OF TRANSPORTATION": Rank.CHIEF_TRANSPORTATION,
}

ETHNICITY_NAMES: Dict[str, Ethnicity] = {
    "ASIAN": Ethnicity.ASIAN,
    "ASIAN/PACIFIC ISLANDER": Ethnicity.ASIAN,
    "BLACK": Ethnicity.BLACK,
    "HISPANIC": Ethnicity.HISPANIC,
    "NATIVE AMERICAN": Ethnicity.NATIVE_AMERICAN,
    "AMERICAN INDIAN": Ethnicity.NATIVE_AMERICAN,
    "WHITE": Ethnicity.WHITE,
}


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _title_key(value: Any) -> str:
    key = _clean(value).upper().replace(".", "")
    key = re.sub(r"\s*/\s*", "/", key)
    return " ".join(key.split())


def parse_name(raw: Any) -> Parsed:
    """Parse ``"LAST, FIRST[ M]"``.

    The first-name group is lazy so multi-word first names stay intact and
    only a trailing single-letter token is read as the middle initial.
    """
    text = _clean(raw)
    last, sep, rest = text.partition(",")
    last, rest = last.strip(), rest.strip()
    if not sep or not last or not rest:
        return Parsed(UNKNOWN_NAME, f"unparseable name {text!r}")
    match = NAME_RE.match(rest)
    if not match:
        return Parsed(UNKNOWN_NAME, f"unparseable name {text!r}")
    middle = match.group("middle")
    return Parsed(Name(first=match.group("first"), last=last, middle_initial=middle.upper() if middle else None))


def parse_date(raw: Any) -> Parsed:
    """Parse ``"M/D/YYYY 12:00:00 AM"`` into a :class:`StructuredDate`.

    A string that does not look like a date yields ``UNKNOWN_DATE``. Otherwise
    each component is range checked on its own and only out-of-range
    components are replaced by their sentinel.
    """
    text = _clean(raw)
    match = DATE_RE.match(text)
    if not match:
        return Parsed(UNKNOWN_DATE, f"unparseable date {text!r}")
    month_num, day, year = (int(part) for part in match.groups())
    problems = []
    if not MIN_YEAR <= year <= MAX_YEAR:
        problems.append(f"year {year} out of range")
        year = UNKNOWN_YEAR
    if 1 <= month_num <= 12:
        month = Month(month_num)
    else:
        problems.append(f"month {month_num} out of range")
        month = Month.UNKNOWN
    if not 1 <= day <= 31:
        problems.append(f"day {day} out of range")
        day = UNKNOWN_DAY
    problem = f"{text!r}: " + ", ".join(problems) if problems else None
    return Parsed(StructuredDate(year=year, month=month, day=day), problem)


def parse_rank(raw: Any) -> Parsed:
    key = _title_key(raw)
    rank = RANK_TITLES.get(key)
    if rank is None:
        return Parsed(Rank.UNKNOWN, f"unrecognized rank {key!r}")
    return Parsed(rank)


def parse_ethnicity(raw: Any) -> Parsed:
    key = _title_key(raw)
    ethnicity = ETHNICITY_NAMES.get(key)
    if ethnicity is None:
        return Parsed(Ethnicity.UNKNOWN, f"unrecognized ethnicity {key!r}")
    return Parsed(ethnicity)


def parse_shield_number(raw: Any) -> Parsed:
    text = _clean(raw)
    if not text:
        return Parsed(None)
    if not SHIELD_RE.match(text):
        return Parsed(None, f"non-numeric shield number {text!r}")
    try:
        return Parsed(int(text))
    except ValueError:
        return Parsed(None, f"shield number too long ({len(text)} digits)")


def parse_command(raw: Any) -> Parsed:
    text = _clean(raw)
    if not text:
        return Parsed(UNKNOWN_COMMAND, "blank command")
    return Parsed(text)


FIELD_PARSERS: Dict[Attribute, Callable[[Any], Parsed]] = {
    Attribute.RANK: parse_rank,
    Attribute.APPOINTMENT_DATE: parse_date,
    Attribute.COMMAND: parse_command,
    Attribute.ASSIGNMENT_DATE: parse_date,
    Attribute.ETHNICITY: parse_ethnicity,
    Attribute.SHIELD_NUMBER: parse_shield_number,
    Attribute.EFFECTIVE_DATE: parse_date,
}

ATTRIBUTE_DEFAULTS: Dict[Attribute, Any] = {
    Attribute.RANK: Rank.UNKNOWN,
    Attribute.APPOINTMENT_DATE: UNKNOWN_DATE,
    Attribute.COMMAND: UNKNOWN_COMMAND,
    Attribute.ASSIGNMENT_DATE: UNKNOWN_DATE,
    Attribute.ETHNICITY: Ethnicity.UNKNOWN,
    Attribute.SHIELD_NUMBER: None,
    Attribute.EFFECTIVE_DATE: UNKNOWN_DATE,
}


def field_table(raw: Optional[Dict[str, Any]], default: Dict[str, Attribute]) -> Dict[str, Attribute]:
    """Build a column-id table from a config mapping of ``{field_id: attribute}``.

    An empty or missing mapping falls back to ``default``.
    """
    if not raw:
        return dict(default)
    table: Dict[str, Attribute] = {}
    for field_id, name in raw.items():
        try:
            table[str(field_id)] = Attribute(str(name))
        except ValueError:
            raise ValueError(f"field {field_id}: unknown attribute {name!r}") from None
    return table


def field_pairs(entry: Any) -> List[Tuple[str, Any]]:
    """Return the ``(field_id, value)`` pairs of one detail entry."""
    if not isinstance(entry, dict):
        return []
    pairs = []
    for column in entry.get("Columns") or []:
        if isinstance(column, dict) and column.get("Id") is not None:
            pairs.append((str(column["Id"]), column.get("Value")))
        elif isinstance(column, (list, tuple)) and len(column) == 2:
            pairs.append((str(column[0]), column[1]))
    return pairs


def apply_fields(
    key: Any,
    pairs: Iterable[Tuple[str, Any]],
    table: Dict[str, Attribute],
    sink: Optional[ErrorSink] = None,
    required: Sequence[Attribute] = (),
) -> Dict[Attribute, Any]:
    """Parse ``pairs`` through ``table``.

    Unknown ids are reported and skipped. Attributes in ``required`` that were
    never assigned get their sentinel and are reported as missing.
    """
    values: Dict[Attribute, Any] = {}
    for field_id, raw in pairs:
        attribute = table.get(field_id)
        if attribute is None:
            _report(sink, key, f"unknown field id {field_id}", level=logging.INFO)
            continue
        parsed = FIELD_PARSERS[attribute](raw)
        if parsed.problem:
            _report(sink, key, f"{attribute.value}: {parsed.problem}")
        values[attribute] = parsed.value
    for attribute in required:
        if attribute not in values:
            _report(sink, key, f"missing {attribute.value}")
            values[attribute] = ATTRIBUTE_DEFAULTS[attribute]
    return values


def parse_rank_history(
    entries: Sequence[Any],
    key: Any = "",
    sink: Optional[ErrorSink] = None,
    table: Optional[Dict[str, Attribute]] = None,
) -> Parsed:
    """Parse rank history entries, sorted ascending by effective date."""
    if not entries:
        return Parsed([], "empty rank history")
    history = []
    for entry in entries:
        values = apply_fields(
            key,
            field_pairs(entry),
            table or RANK_HISTORY_FIELDS,
            sink,
            required=(Attribute.EFFECTIVE_DATE, Attribute.RANK),
        )
        history.append(
            RankHistoryEntry(
                effective_date=values[Attribute.EFFECTIVE_DATE],
                rank=values[Attribute.RANK],
                shield_number=values.get(Attribute.SHIELD_NUMBER),
            )
        )
    history.sort(key=lambda e: e.effective_date.sort_key())
    return Parsed(history)


def normalize_officer(
    record_id: int,
    profile: Dict[str, Any],
    history_entries: Sequence[Any],
    sink: Optional[ErrorSink] = None,
    profile_fields: Optional[Dict[str, Attribute]] = None,
    history_fields: Optional[Dict[str, Attribute]] = None,
) -> Officer:
    name = parse_name(profile.get("Label"))
    if name.problem:
        _report(sink, record_id, f"name: {name.problem}")
    values = apply_fields(
        record_id,
        field_pairs(profile),
        profile_fields or PROFILE_FIELDS,
        sink,
        required=PROFILE_ATTRIBUTES,
    )
    history = parse_rank_history(history_entries, key=record_id, sink=sink, table=history_fields)
    if history.problem:
        _report(sink, record_id, f"rank_history: {history.problem}", level=logging.INFO)
    return Officer(
        id=record_id,
        name=name.value,
        rank=values[Attribute.RANK],
        appointment_date=values[Attribute.APPOINTMENT_DATE],
        command=values[Attribute.COMMAND],
        assignment_date=values[Attribute.ASSIGNMENT_DATE],
        ethnicity=values[Attribute.ETHNICITY],
        shield_number=values[Attribute.SHIELD_NUMBER],
        rank_history=tuple(history.value),
    )


def _report(sink: Optional[ErrorSink], key: Any, cause: str, level: int = logging.WARNING) -> None:
    if sink is not None:
        sink.record(FIELD, key, cause, level=level)
    else:
        log_json(logger, "field_error", level=level, key=str(key), cause=cause)
