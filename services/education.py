from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

from services.errors import EducationListError
from services.validators import FieldError, at_most, collect_errors, required, year_between


def _current_year() -> int:
    return date.today().year


class EducationEntry(BaseModel):
    degree_name: str = ""
    achievement_year: Optional[int] = Field(default_factory=_current_year)
    educational_institute: str = ""
    grade: str = ""
    special_achievement: Optional[str] = None

    model_config = {"frozen": True}

    def validate_fields(self, prefix: str) -> list[FieldError]:
        return collect_errors([
            (f"{prefix}.degree_name", self.degree_name, (required("Degree Name is required"), at_most(256))),
            (f"{prefix}.achievement_year", self.achievement_year, (year_between(),)),
            (f"{prefix}.educational_institute", self.educational_institute, (required("Institute is required"), at_most(256))),
            (f"{prefix}.grade", self.grade, (required("Grade is required"), at_most(64))),
        ], self)


class EducationEntryList(BaseModel):
    """
    Ordered education entries. Operations return a new list; the first entry can never be
    removed, so user actions cannot empty a list that starts with one entry.
    """

    entries: tuple[EducationEntry, ...] = ()

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, entry: Optional[EducationEntry] = None) -> "EducationEntryList":
        return EducationEntryList(entries=self.entries + (entry or EducationEntry(),))

    def remove(self, index: int) -> "EducationEntryList":
        self._check_index(index)
        if index == 0:
            raise EducationListError("The first education entry cannot be removed")
        return EducationEntryList(entries=self.entries[:index] + self.entries[index + 1:])

    def update(self, index: int, **fields: Any) -> "EducationEntryList":
        self._check_index(index)
        updated = EducationEntry.model_validate({**self.entries[index].model_dump(), **fields})
        entries = list(self.entries)
        entries[index] = updated
        return EducationEntryList(entries=tuple(entries))

    def validate_all(self) -> list[FieldError]:
        if not self.entries:
            return [FieldError(field="education", message="At least one degree is required")]
        errors: list[FieldError] = []
        for i, entry in enumerate(self.entries):
            errors.extend(entry.validate_fields(f"education.{i}"))
        return errors

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.entries):
            raise EducationListError(f"No education entry at position {index}")
