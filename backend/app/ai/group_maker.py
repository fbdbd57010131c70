from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.ai.group_scoring import (
    GroupComposition,
    Scorer,
    analyze_composition,
    experience_mix_score,
    general_quality_score,
    interest_overlap_score,
)
from app.models.student import StudentCandidate, year_level_rank

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "balanced_skills"


@dataclass(frozen=True)
class MadeGroup:
    members: list[StudentCandidate]
    quality_score: int
    analysis: GroupComposition

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]


def _first_max(pool: list[StudentCandidate], key: Callable[[StudentCandidate], int]) -> int:
    """Index of the first candidate with the highest key; later ties never win."""
    best_idx = 0
    best_value = key(pool[0])
    for idx in range(1, len(pool)):
        value = key(pool[idx])
        if value > best_value:
            best_idx, best_value = idx, value
    return best_idx


def _finish(members: list[StudentCandidate], scorer: Scorer) -> MadeGroup:
    return MadeGroup(
        members=members,
        quality_score=scorer(members),
        analysis=analyze_composition(members),
    )


def _balanced_skills(pool: list[StudentCandidate], group_size: int, rng: random.Random) -> list[MadeGroup]:
    groups: list[MadeGroup] = []
    while len(pool) >= group_size:
        members = [pool.pop(_first_max(pool, lambda s: len(s.skills)))]

        while len(members) < group_size and pool:
            covered: set[str] = set()
            for m in members:
                covered |= m.skill_names
            idx = _first_max(pool, lambda s: sum(1 for sk in s.skills if sk.name not in covered))
            members.append(pool.pop(idx))

        groups.append(_finish(members, general_quality_score))
    return groups


def _similar_interests(pool: list[StudentCandidate], group_size: int, rng: random.Random) -> list[MadeGroup]:
    groups: list[MadeGroup] = []
    while len(pool) >= group_size:
        starter = pool.pop(rng.randrange(len(pool)))
        members = [starter]
        starter_interests = starter.interest_names

        while len(members) < group_size and pool:
            idx = _first_max(pool, lambda s: len(s.interest_names & starter_interests))
            members.append(pool.pop(idx))

        groups.append(_finish(members, interest_overlap_score))
    return groups


def _mixed_experience(pool: list[StudentCandidate], group_size: int, rng: random.Random) -> list[MadeGroup]:
    # Stable sort: equal ranks keep roster order.
    pool.sort(key=lambda s: year_level_rank(s.year_level), reverse=True)

    groups: list[MadeGroup] = []
    while len(pool) >= group_size:
        levels: list[str] = []
        for s in pool:
            if s.year_level and s.year_level not in levels:
                levels.append(s.year_level)

        members: list[StudentCandidate] = []
        for i in range(group_size):
            if not pool:
                break
            idx = 0
            if levels:
                target = levels[i % len(levels)]
                idx = next((j for j, s in enumerate(pool) if s.year_level == target), 0)
            members.append(pool.pop(idx))

        groups.append(_finish(members, experience_mix_score))
    return groups


def _random_balanced(pool: list[StudentCandidate], group_size: int, rng: random.Random) -> list[MadeGroup]:
    rng.shuffle(pool)
    full_group_count = len(pool) // group_size
    return [
        _finish(pool[i * group_size : (i + 1) * group_size], general_quality_score)
        for i in range(full_group_count)
    ]


STRATEGIES = {
    "balanced_skills": _balanced_skills,
    "similar_interests": _similar_interests,
    "mixed_experience": _mixed_experience,
    "random_balanced": _random_balanced,
}


def resolve_algorithm(name: Optional[str]) -> str:
    if name in STRATEGIES:
        return name
    if name:
        logger.info("Unknown grouping algorithm %r, using %s", name, DEFAULT_ALGORITHM)
    return DEFAULT_ALGORITHM


def make_groups(
    *,
    students: Sequence[StudentCandidate],
    group_size: int,
    algorithm: Optional[str] = DEFAULT_ALGORITHM,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> list[MadeGroup]:
    """
    Partition a roster into disjoint groups of exactly ``group_size``.

    Students left over once fewer than ``group_size`` remain are not placed.
    The caller's sequence is copied, never consumed in place.
    """
    if group_size <= 0:
        raise ValueError("group_size must be a positive integer")

    pool = list(students)
    if len(pool) < group_size:
        return []

    strategy = STRATEGIES[resolve_algorithm(algorithm)]
    return strategy(pool, group_size, rng or random.Random(seed))
