"""
Quality scoring for proposed student groups.

Scores are integers in [0, 100]. Each partitioning strategy ranks its groups
with a different scorer, but every scorer can be applied to any group so
callers can compare strategies side by side.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from app.models.student import StudentCandidate

# Weights for the general score; they sum to 1.0.
QUALITY_WEIGHTS = {
    "skill_diversity": 0.3,
    "experience_balance": 0.3,
    "profile_completeness": 0.2,
    "group_size_fit": 0.2,
}

IDEAL_GROUP_SIZE = 4
SKILL_DIVERSITY_TARGET = 10

HIGH_QUALITY_THRESHOLD = 80
MEDIUM_QUALITY_THRESHOLD = 60


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _round_half_up(value: float) -> int:
    # Halves round up: 62.5 -> 63.
    return int(math.floor(value + 0.5))


def _distinct_year_levels(members: Sequence[StudentCandidate]) -> int:
    return len({m.year_level for m in members if m.year_level})


def _average_completion(members: Sequence[StudentCandidate]) -> float:
    if not members:
        return 0.0
    return sum(m.profile_completion_percentage for m in members) / len(members)


def _experience_ratio(members: Sequence[StudentCandidate]) -> float:
    return _clamp(_distinct_year_levels(members) / min(len(members), IDEAL_GROUP_SIZE) * 100)


def general_quality_score(members: Sequence[StudentCandidate]) -> int:
    if not members:
        return 0

    all_skills: set[str] = set()
    for m in members:
        all_skills |= m.skill_names

    skill_diversity = min(len(all_skills) / SKILL_DIVERSITY_TARGET, 1) * 100
    experience_balance = _experience_ratio(members)
    profile_completeness = _clamp(_average_completion(members))
    # Scored against the ideal size, not the requested one.
    group_size_fit = max(0, 100 - abs(len(members) - IDEAL_GROUP_SIZE) * 20)

    score = (
        skill_diversity * QUALITY_WEIGHTS["skill_diversity"]
        + experience_balance * QUALITY_WEIGHTS["experience_balance"]
        + profile_completeness * QUALITY_WEIGHTS["profile_completeness"]
        + group_size_fit * QUALITY_WEIGHTS["group_size_fit"]
    )
    return _round_half_up(_clamp(score))


def interest_overlap_score(members: Sequence[StudentCandidate]) -> int:
    if not members:
        return 0

    counts = Counter(i.name for m in members for i in m.interests)
    if not counts:
        return 0

    shared = sum(1 for c in counts.values() if c > 1)
    return _round_half_up(shared / len(counts) * 100)


def experience_mix_score(members: Sequence[StudentCandidate]) -> int:
    if not members:
        return 0
    return _round_half_up(_experience_ratio(members))


Scorer = Callable[[Sequence[StudentCandidate]], int]

SCORERS: dict[str, Scorer] = {
    "general": general_quality_score,
    "interest_overlap": interest_overlap_score,
    "experience_mix": experience_mix_score,
}


def quality_tier(score: int) -> str:
    if score >= HIGH_QUALITY_THRESHOLD:
        return "high"
    if score >= MEDIUM_QUALITY_THRESHOLD:
        return "medium"
    return "low"


@dataclass(frozen=True)
class GroupComposition:
    skill_categories: dict[str, int] = field(default_factory=dict)
    year_level_distribution: dict[str, int] = field(default_factory=dict)
    majors: dict[str, int] = field(default_factory=dict)
    average_profile_completion: int = 0
    total_skills: int = 0
    total_interests: int = 0


def analyze_composition(members: Sequence[StudentCandidate]) -> GroupComposition:
    """Descriptive breakdown of a group; not used when choosing members."""
    skill_categories: Counter[str] = Counter()
    year_levels: Counter[str] = Counter()
    majors: Counter[str] = Counter()
    total_interests = 0

    for m in members:
        for skill in m.skills:
            skill_categories[skill.category or "Other"] += 1
        total_interests += len(m.interests)
        if m.year_level:
            year_levels[m.year_level] += 1
        if m.major:
            majors[m.major] += 1

    return GroupComposition(
        skill_categories=dict(skill_categories),
        year_level_distribution=dict(year_levels),
        majors=dict(majors),
        average_profile_completion=_round_half_up(_average_completion(members)),
        total_skills=sum(skill_categories.values()),
        total_interests=total_interests,
    )


@dataclass(frozen=True)
class PartitionAnalysis:
    total_groups: int = 0
    average_quality_score: int = 0
    average_group_size: int = 0
    skill_distribution: dict[str, int] = field(default_factory=dict)
    quality_distribution: dict[str, int] = field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )


def analyze_partition(groups: Iterable) -> PartitionAnalysis:
    """
    Aggregate a whole partition.

    Accepts anything exposing ``members``, ``quality_score`` and ``analysis``
    (a ``GroupComposition``), which is what ``make_groups`` returns.
    """
    groups = list(groups)
    if not groups:
        return PartitionAnalysis()

    tiers = {"high": 0, "medium": 0, "low": 0}
    skills: Counter[str] = Counter()
    total_quality = 0
    total_members = 0

    for g in groups:
        score = g.quality_score or 0
        total_quality += score
        total_members += len(g.members)
        tiers[quality_tier(score)] += 1
        if g.analysis is not None:
            skills.update(g.analysis.skill_categories)

    return PartitionAnalysis(
        total_groups=len(groups),
        average_quality_score=_round_half_up(total_quality / len(groups)),
        average_group_size=_round_half_up(total_members / len(groups)),
        skill_distribution=dict(skills),
        quality_distribution=tiers,
    )
