import pytest

from schoolledger.api.v1.promotions.progression import (
    is_valid_grade_for_school_type,
    next_level,
    normalize_grade_name,
    parse_grade_label,
)
from schoolledger.core.enums import CompletionStatus, SchoolType
from schoolledger.core.exceptions import UnknownGradeError


@pytest.mark.parametrize(
    "current, expected",
    [
        ("Grade 1", "Grade 2"),
        ("Grade 6", "Grade 7"),
        ("Form 1", "Form 2"),
        ("Form 3", "Form 4"),
        ("Form 5", "Form 6"),
    ],
)
def test_next_level_promotes(current: str, expected: str) -> None:
    result = next_level(current, SchoolType.COMBINED)
    assert result.next_grade == expected
    assert not result.completed


@pytest.mark.parametrize(
    "current, status",
    [
        ("Grade 7", CompletionStatus.COMPLETED_PRIMARY),
        ("Form 4", CompletionStatus.COMPLETED_O_LEVEL),
        ("Form 6", CompletionStatus.COMPLETED_A_LEVEL),
    ],
)
def test_next_level_completes_phase(current: str, status: CompletionStatus) -> None:
    result = next_level(current, SchoolType.COMBINED)
    assert result.completed
    assert result.completion_status == status
    assert result.next_grade is None


def test_labels_are_normalized_before_lookup() -> None:
    assert next_level("grade1", "primary").next_grade == "Grade 2"
    assert next_level("  FORM 2 ", SchoolType.SECONDARY).next_grade == "Form 3"


@pytest.mark.parametrize("label", ["Grade 8", "Form 7", "Grade 0", "Year 3", "", None])
def test_unknown_grades_raise(label) -> None:
    with pytest.raises(UnknownGradeError) as exc_info:
        next_level(label, SchoolType.COMBINED)
    assert exc_info.value.status_code == 422


def test_school_type_restricts_bands() -> None:
    with pytest.raises(UnknownGradeError) as exc_info:
        next_level("Form 1", SchoolType.PRIMARY)
    assert "PRIMARY" in exc_info.value.message
    with pytest.raises(UnknownGradeError):
        next_level("Grade 3", SchoolType.SECONDARY)

    assert is_valid_grade_for_school_type("Grade 3", "PRIMARY")
    assert is_valid_grade_for_school_type("Form 1", "COMBINED")
    assert not is_valid_grade_for_school_type("Form 1", "PRIMARY")
    assert not is_valid_grade_for_school_type("Grade 1", "BOARDING")


def test_parse_and_normalize() -> None:
    level = parse_grade_label("form5")
    assert level is not None and level.label == "Form 5"
    assert parse_grade_label("Kindergarten") is None
    assert normalize_grade_name("GRADE 4") == "Grade 4"
    assert normalize_grade_name("Kindergarten") == "Kindergarten"
