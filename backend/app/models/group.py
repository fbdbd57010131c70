from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.models.student import StudentCandidate


class GroupCompositionResponse(BaseModel):
    skill_categories: dict[str, int] = Field(default_factory=dict)
    year_level_distribution: dict[str, int] = Field(default_factory=dict)
    majors: dict[str, int] = Field(default_factory=dict)
    average_profile_completion: int = 0
    total_skills: int = 0
    total_interests: int = 0


class PartitionAnalysisResponse(BaseModel):
    total_groups: int = 0
    average_quality_score: int = 0
    average_group_size: int = 0
    skill_distribution: dict[str, int] = Field(default_factory=dict)
    quality_distribution: dict[str, int] = Field(default_factory=dict)


class SuggestedGroup(BaseModel):
    members: list[StudentCandidate] = Field(default_factory=list)
    quality_score: int = 0
    analysis: GroupCompositionResponse


class GroupSuggestionResponse(BaseModel):
    algorithm: str
    group_size: int
    total_students: int
    suggested_groups: list[SuggestedGroup] = Field(default_factory=list)
    group_analysis: PartitionAnalysisResponse


class CommitGroupItem(BaseModel):
    members: list[str]
    quality_score: int = Field(default=0, ge=0, le=100)


class CommitGroupsRequest(BaseModel):
    algorithm: str = "balanced_skills"
    group_size: int = Field(default=4, ge=1)
    project_id: Optional[str] = None
    group_names: list[str] = Field(default_factory=list)
    groups: list[CommitGroupItem]


class CommittedGroup(BaseModel):
    index: int
    group_id: str
    name: str
    member_uids: list[str] = Field(default_factory=list)
    quality_score: int = 0


class FailedGroup(BaseModel):
    index: int
    name: str
    error: str
    group_id: Optional[str] = None


class CommitGroupsResponse(BaseModel):
    algorithm: str
    created: list[CommittedGroup] = Field(default_factory=list)
    failed: list[FailedGroup] = Field(default_factory=list)
    total_members: int = 0


class GroupCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    project_id: Optional[str] = None
    max_size: int = Field(default=4, ge=1)
    formation_criteria: dict[str, Any] = Field(default_factory=dict)
    member_ids: list[str] = Field(default_factory=list)


class GroupUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    max_size: Optional[int] = Field(default=None, ge=1)
    status: Optional[str] = None
    member_ids: list[str] = Field(default_factory=list)


class GroupMemberResponse(BaseModel):
    user_uid: str
    role: str = "member"
    joined_at: Optional[datetime] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    year_level: Optional[str] = None
    major: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    project_id: Optional[str] = None
    max_size: int
    status: str
    formation_criteria: dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    current_size: int = 0
    members: list[GroupMemberResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class GroupListResponse(BaseModel):
    groups: list[GroupResponse] = Field(default_factory=list)
    pagination: Pagination


class AlgorithmInfo(BaseModel):
    name: str
    description: str
    criteria: list[str] = Field(default_factory=list)
    optimal_size: int
    considerations: list[str] = Field(default_factory=list)


class AlgorithmCatalogResponse(BaseModel):
    algorithms: dict[str, AlgorithmInfo]
    formation_criteria: dict[str, dict[str, float]]
