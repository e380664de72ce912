"""
API request and response models for the job board REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
board/models.py, which own the internal domain representation. Route handlers
map between the two.

Posting fields get shape checks only (types, lengths). Content validation and
sanitization of postings is not this layer's job.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES
from board.models import Candidate, Vacancy

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

PASSWORD_MIN = 6
# Character cap; _check_password_bytes() enforces bcrypt's byte limit.
PASSWORD_MAX = 72


def _check_password_bytes(value):
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)


class ProfilePatch(BaseModel):
    """Request body for PATCH /api/v1/auth/me. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    avatar: Optional[str] = Field(default=None, max_length=255)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(max_length=255)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    expires_in: int
    user_id: int
    email: str
    name: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    name: str
    avatar: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "MeResponse":
        # hashed_password and reset fields never leave the process.
        return cls(user_id=user.id, email=user.email, name=user.name, avatar=user.avatar)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Vacancies
# ---------------------------------------------------------------------------


def _split_skills(value):
    """Accept a list or a comma-separated string ("python, sql")."""
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


class VacancyCreate(BaseModel):
    """Request body for POST /api/v1/vacancies."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    company: str = Field(min_length=1, max_length=255)
    location: str = Field(default="", max_length=255)
    salary: str = Field(default="", max_length=100)
    contract: str = Field(default="", max_length=100)
    description: str = Field(default="", max_length=20000)
    skills: list[str] = Field(default_factory=list, max_length=50)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, value):
        return _split_skills(value)


class VacancyPatch(BaseModel):
    """Request body for PATCH /api/v1/vacancies/{url}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    salary: Optional[str] = Field(default=None, max_length=100)
    contract: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=20000)
    skills: Optional[list[str]] = Field(default=None, max_length=50)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, value):
        return _split_skills(value)


class VacancyResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    url: str
    title: str
    company: str
    location: str
    salary: str
    contract: str
    description: str
    skills: list[str]
    author_id: int
    created_at: str

    @classmethod
    def from_vacancy(cls, vacancy: Vacancy) -> "VacancyResponse":
        return cls(
            id=vacancy.id,
            url=vacancy.url,
            title=vacancy.title,
            company=vacancy.company,
            location=vacancy.location,
            salary=vacancy.salary,
            contract=vacancy.contract,
            description=vacancy.description,
            skills=vacancy.skills,
            author_id=vacancy.author_id,
            created_at=vacancy.created_at,
        )


class CandidateCreate(BaseModel):
    """Request body for POST /api/v1/vacancies/{url}/candidates.

    cv is the filename the external file store returned for the uploaded CV.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    cv: Optional[str] = Field(default=None, max_length=255)


class CandidateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    cv: Optional[str]
    created_at: str

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "CandidateResponse":
        return cls(
            id=candidate.id,
            name=candidate.name,
            email=candidate.email,
            cv=candidate.cv,
            created_at=candidate.created_at,
        )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
