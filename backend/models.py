from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum as SQLEnum, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
import enum


class Department(enum.Enum):
    CS = "Computer Science"
    ECE = "Electronics"
    MECH = "Mechanical"
    CIVIL = "Civil"
    EEE = "Electrical"
    IT = "Information Technology"


class UserRole(enum.Enum):
    STUDENT = "student"
    PROFESSOR = "professor"
    HOD = "hod"
    DIRECTOR = "director"


class ProjectStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, index=True)
    department = Column(SQLEnum(Department), nullable=True, index=True)  # null only for directors
    avatar = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    department = Column(SQLEnum(Department), nullable=False, index=True)
    status = Column(SQLEnum(ProjectStatus), default=ProjectStatus.DRAFT, nullable=False, index=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    is_guest = Column(Boolean, default=False, nullable=False)
    guest_details = Column(JSON, nullable=True)  # {"name": ..., "email": ...}
    team_members = Column(JSON, nullable=True)  # [{"name", "email", "roll_number"}]
    assigned_professor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    github_link = Column(String(500), nullable=True)
    live_link = Column(String(500), nullable=True)
    documentation_link = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    submitted_by = relationship("User", foreign_keys=[submitted_by_id])
    assigned_professor = relationship("User", foreign_keys=[assigned_professor_id])
    evaluations = relationship("Evaluation", back_populates="project", cascade="all, delete-orphan")
    submissions = relationship("Submission", back_populates="project", cascade="all, delete-orphan")


class Evaluation(Base):
    __tablename__ = "evaluations"
    __table_args__ = (
        UniqueConstraint("project_id", "evaluator_id", name="uq_evaluations_project_evaluator"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    evaluator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    marks = Column(Float, nullable=False, index=True)
    feedback = Column(Text, nullable=False)
    criteria = Column(JSON, nullable=False)  # {"innovation": 18, "implementation": 22, ...}
    evaluated_at = Column(DateTime(timezone=True), server_default=func.now())

    project = relationship("Project", back_populates="evaluations")
    evaluator = relationship("User")


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("project_id", "version", name="uq_submissions_project_version"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    version = Column(Integer, nullable=False)
    files = Column(JSON, nullable=True)  # [{"filename", "original_name", "path", "size", "mime_type"}]
    notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    project = relationship("Project", back_populates="submissions")


class GuestActivity(Base):
    __tablename__ = "guest_activity"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(255), nullable=False, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
