"""
Grade/form progression rules (Zimbabwe system).

- Primary: Grades 1-7. Grade 7 completes primary.
- Secondary O Level: Forms 1-4. Form 4 completes O Level.
- Secondary A Level: Forms 5-6. Form 6 completes A Level.

Labels are parsed once into a GradeLevel; the rule table only sees parsed levels.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from schoolledger.core.enums import CompletionStatus, SchoolType
from schoolledger.core.exceptions import UnknownGradeError

_LABEL_RE = re.compile(r"^(grade|form)\s*(\d+)$", re.IGNORECASE)


class LevelBand(str, Enum):
    GRADE = "Grade"
    FORM = "Form"


@dataclass(frozen=True)
class GradeLevel:
    band: LevelBand
    number: int

    @property
    def label(self) -> str:
        return f"{self.band.value} {self.number}"


@dataclass(frozen=True)
class ProgressionResult:
    next_grade: Optional[str] = None
    completion_status: Optional[CompletionStatus] = None

    @property
    def completed(self) -> bool:
        return self.completion_status is not None


# (band, number) -> next level or completion category
_RULES: dict[tuple[LevelBand, int], Union[GradeLevel, CompletionStatus]] = {
    **{(LevelBand.GRADE, n): GradeLevel(LevelBand.GRADE, n + 1) for n in range(1, 7)},
    (LevelBand.GRADE, 7): CompletionStatus.COMPLETED_PRIMARY,
    **{(LevelBand.FORM, n): GradeLevel(LevelBand.FORM, n + 1) for n in range(1, 4)},
    (LevelBand.FORM, 4): CompletionStatus.COMPLETED_O_LEVEL,
    (LevelBand.FORM, 5): GradeLevel(LevelBand.FORM, 6),
    (LevelBand.FORM, 6): CompletionStatus.COMPLETED_A_LEVEL,
}

_BANDS_BY_SCHOOL_TYPE = {
    SchoolType.PRIMARY: {LevelBand.GRADE},
    SchoolType.SECONDARY: {LevelBand.FORM},
    SchoolType.COMBINED: {LevelBand.GRADE, LevelBand.FORM},
}


def _coerce_school_type(school_type: Union[SchoolType, str, None]) -> Optional[SchoolType]:
    if isinstance(school_type, SchoolType):
        return school_type
    try:
        return SchoolType((school_type or "").strip().upper())
    except ValueError:
        return None


def parse_grade_label(label: Optional[str]) -> Optional[GradeLevel]:
    """'grade1', 'Grade 1', 'GRADE 1' -> GradeLevel(GRADE, 1). None when the label does not match."""
    if not label:
        return None
    match = _LABEL_RE.match(label.strip())
    if not match:
        return None
    return GradeLevel(LevelBand(match.group(1).capitalize()), int(match.group(2)))


def normalize_grade_name(label: Optional[str]) -> Optional[str]:
    """Standard spelling of a grade/form label; unmatched labels are returned as-is."""
    level = parse_grade_label(label)
    if level is None or (level.band, level.number) not in _RULES:
        return label
    return level.label


def is_valid_grade_for_school_type(label: Optional[str], school_type: Union[SchoolType, str, None]) -> bool:
    """Primary schools use Grades, secondary use Forms, combined use both."""
    parsed_type = _coerce_school_type(school_type)
    if label is None or parsed_type is None:
        return False
    level = parse_grade_label(label)
    return level is not None and level.band in _BANDS_BY_SCHOOL_TYPE[parsed_type]


def next_level(current_grade: Optional[str], school_type: Union[SchoolType, str]) -> ProgressionResult:
    """
    Next grade/form or completion category for a student currently in current_grade.
    Raises UnknownGradeError for blank, unparseable or out-of-range labels, and for
    labels the school type does not use (a Form in a PRIMARY school).
    """
    school_type_value = getattr(school_type, "value", school_type)
    if not is_valid_grade_for_school_type(current_grade, school_type):
        raise UnknownGradeError(current_grade or "", str(school_type_value))
    level = parse_grade_label(current_grade)
    rule = _RULES.get((level.band, level.number))
    if rule is None:
        # e.g. "Grade 9", "Form 0"
        raise UnknownGradeError(current_grade, str(school_type_value))
    if isinstance(rule, CompletionStatus):
        return ProgressionResult(completion_status=rule)
    return ProgressionResult(next_grade=rule.label)
