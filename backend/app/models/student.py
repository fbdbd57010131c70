from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator


YEAR_LEVEL_RANK = {
    "Freshman": 1,
    "Sophomore": 2,
    "Junior": 3,
    "Senior": 4,
    "Graduate": 5,
    "PhD": 6,
}


PROFICIENCY_LEVELS = ("beginner", "intermediate", "advanced", "expert")


def year_level_rank(year_level: Optional[str]) -> int:
    return YEAR_LEVEL_RANK.get(year_level or "", 0)


class Skill(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: Optional[str] = None
    proficiency: Optional[Literal["beginner", "intermediate", "advanced", "expert"]] = None

    @field_validator("proficiency", mode="before")
    @classmethod
    def _unknown_proficiency_is_none(cls, value):
        if isinstance(value, str) and value.strip().lower() in PROFICIENCY_LEVELS:
            return value.strip().lower()
        return None


class Interest(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: Optional[str] = None


class StudentCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str = ""
    email: Optional[str] = None
    year_level: Optional[str] = None
    major: Optional[str] = None
    profile_completion_percentage: int = 0
    skills: tuple[Skill, ...] = ()
    interests: tuple[Interest, ...] = ()

    @field_validator("profile_completion_percentage", mode="before")
    @classmethod
    def _completion_in_range(cls, value):
        try:
            return max(0, min(100, int(value)))
        except (TypeError, ValueError):
            return 0

    @field_validator("skills", "interests", mode="before")
    @classmethod
    def _missing_collections_are_empty(cls, value):
        # Profiles are often half filled in; anything that isn't a list is "none".
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(value)

    @property
    def skill_names(self) -> set[str]:
        return {s.name for s in self.skills}

    @property
    def interest_names(self) -> set[str]:
        return {i.name for i in self.interests}
