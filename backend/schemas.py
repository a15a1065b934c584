from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from enum import Enum
import enum
from datetime import datetime
from urllib.parse import urlparse


class DepartmentEnum(str, Enum):
    CS = "Computer Science"
    ECE = "Electronics"
    MECH = "Mechanical"
    CIVIL = "Civil"
    EEE = "Electrical"
    IT = "Information Technology"


class UserRoleEnum(str, Enum):
    STUDENT = "student"
    PROFESSOR = "professor"
    HOD = "hod"
    DIRECTOR = "director"


class ProjectStatusEnum(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


def _normalize_optional_http_url(value: Optional[str], field_name: str, max_length: int = 500) -> Optional[str]:
    raw = str(value or "").strip()
    if not raw:
        return None
    if len(raw) > max_length:
        raise ValueError(f"{field_name} must be at most {max_length} characters")
    parsed = urlparse(raw)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{field_name} must be a valid http/https URL")
    return raw


def _normalize_optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None


def _enum_value(value):
    # ORM columns hold models.* enums; the API speaks the str enums below.
    if isinstance(value, enum.Enum):
        return value.value
    return value


# Auth Schemas
class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRoleEnum
    department: Optional[DepartmentEnum] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        value = str(v or "").strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return str(v).strip().lower()

    @model_validator(mode="after")
    def validate_department(self):
        if self.role != UserRoleEnum.DIRECTOR and self.department is None:
            raise ValueError("Department is required for every role except director")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRoleEnum
    department: Optional[DepartmentEnum] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("role", "department", mode="before")
    @classmethod
    def coerce_enums(cls, v):
        return _enum_value(v)

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    is_guest: bool = False
    user: Optional[UserResponse] = None


# Project Schemas
class TeamMember(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    roll_number: Optional[str] = Field(default=None, max_length=50)


class GuestDetails(BaseModel):
    name: str
    email: str = ""


class _ProjectLinks(BaseModel):
    github_link: Optional[str] = None
    live_link: Optional[str] = None
    documentation_link: Optional[str] = None

    @field_validator("github_link", "live_link", "documentation_link")
    @classmethod
    def validate_links(cls, v, info):
        return _normalize_optional_http_url(v, info.field_name)


class ProjectCreate(_ProjectLinks):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=3000)
    department: Optional[DepartmentEnum] = None
    team_members: List[TeamMember] = Field(default_factory=list)
    deadline: Optional[datetime] = None
    guest_name: Optional[str] = Field(default=None, max_length=100)
    guest_email: Optional[str] = Field(default=None, max_length=255)

    @field_validator("title", "description")
    @classmethod
    def strip_required_text(cls, v):
        value = str(v or "").strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("guest_name", "guest_email")
    @classmethod
    def strip_optional_text(cls, v):
        return _normalize_optional_text(v)


class ProjectUpdate(_ProjectLinks):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=3000)
    team_members: Optional[List[TeamMember]] = None
    deadline: Optional[datetime] = None


class StudentProjectUpdate(ProjectUpdate):
    department: Optional[DepartmentEnum] = None


class HodProjectCreate(_ProjectLinks):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=3000)
    submitted_by_id: int
    assigned_professor_id: Optional[int] = None
    team_members: List[TeamMember] = Field(default_factory=list)
    deadline: Optional[datetime] = None


class ProjectResponse(BaseModel):
    id: int
    title: str
    description: str
    department: DepartmentEnum
    status: ProjectStatusEnum
    submitted_by_id: Optional[int] = None
    submitted_by: Optional[UserSummary] = None
    is_guest: bool
    guest_details: Optional[GuestDetails] = None
    team_members: List[TeamMember] = Field(default_factory=list)
    assigned_professor_id: Optional[int] = None
    assigned_professor: Optional[UserSummary] = None
    deadline: Optional[datetime] = None
    github_link: Optional[str] = None
    live_link: Optional[str] = None
    documentation_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("department", "status", mode="before")
    @classmethod
    def coerce_enums(cls, v):
        return _enum_value(v)

    @field_validator("team_members", mode="before")
    @classmethod
    def default_team_members(cls, v):
        return v or []

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    # Plain string so unknown values reach the status rules and come back as invalid_state_transition.
    status: str


class AssignProfessorRequest(BaseModel):
    project_id: int
    professor_id: int


# Submission Schemas
class SubmissionFile(BaseModel):
    filename: str
    original_name: Optional[str] = None
    path: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = None


class SubmitRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)
    files: Optional[List[SubmissionFile]] = None


class SubmissionResponse(BaseModel):
    id: int
    project_id: int
    submitted_by_id: Optional[int] = None
    version: int
    files: Optional[List[SubmissionFile]] = None
    notes: Optional[str] = None
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Evaluation Schemas
class EvaluationCriteria(BaseModel):
    innovation: float = Field(default=0, ge=0, le=20)
    implementation: float = Field(default=0, ge=0, le=25)
    documentation: float = Field(default=0, ge=0, le=15)
    presentation: float = Field(default=0, ge=0, le=20)
    teamwork: float = Field(default=0, ge=0, le=20)


class EvaluationCreate(BaseModel):
    marks: float = Field(..., ge=0, le=100)
    feedback: str = Field(..., min_length=1, max_length=2000)
    criteria: EvaluationCriteria = Field(default_factory=EvaluationCriteria)

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v):
        value = str(v or "").strip()
        if not value:
            raise ValueError("Please provide feedback")
        return value


class EvaluationResponse(BaseModel):
    id: int
    project_id: int
    evaluator_id: int
    evaluator: Optional[UserSummary] = None
    marks: float
    feedback: str
    criteria: EvaluationCriteria
    criteria_total: float = 0
    evaluated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def compute_criteria_total(self):
        c = self.criteria
        self.criteria_total = c.innovation + c.implementation + c.documentation + c.presentation + c.teamwork
        return self

    class Config:
        from_attributes = True


class RankingEntry(BaseModel):
    rank: int
    project_id: int
    project_title: str
    submitted_by: Optional[UserSummary] = None
    marks: float
    feedback: str
    evaluated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectDetail(BaseModel):
    project: ProjectResponse
    evaluations: List[EvaluationResponse] = Field(default_factory=list)


# Analytics Schemas
class DepartmentCount(BaseModel):
    department: DepartmentEnum
    count: int

    @field_validator("department", mode="before")
    @classmethod
    def coerce_department(cls, v):
        return _enum_value(v)


class DepartmentAverage(BaseModel):
    department: DepartmentEnum
    avg_marks: float

    @field_validator("department", mode="before")
    @classmethod
    def coerce_department(cls, v):
        return _enum_value(v)


class MonthlyCount(BaseModel):
    month: str  # YYYY-MM
    count: int


class AnalyticsOverview(BaseModel):
    total_projects: int
    total_students: int
    total_professors: int
    total_hods: int
    completion_rate: int


class AnalyticsResponse(BaseModel):
    overview: AnalyticsOverview
    status_breakdown: Dict[str, int]
    department_distribution: List[DepartmentCount]
    monthly_submissions: List[MonthlyCount]
    avg_marks_by_department: List[DepartmentAverage]


class DepartmentStats(BaseModel):
    name: DepartmentEnum
    projects: int
    students: int
    professors: int
    completed: int
    completion_rate: int

    @field_validator("name", mode="before")
    @classmethod
    def coerce_department(cls, v):
        return _enum_value(v)


# Guest activity
class GuestActivityCreate(BaseModel):
    action: str = Field(..., min_length=1, max_length=255)
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("action")
    @classmethod
    def strip_action(cls, v):
        value = str(v or "").strip()
        if not value:
            raise ValueError("Action is required")
        return value


class GuestActivityResponse(BaseModel):
    id: int
    action: str
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True
