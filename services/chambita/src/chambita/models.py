from __future__ import annotations

from typing import Annotated, Any, Literal

from common.utils import parse_iso_datetime
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
)
from pydantic.alias_generators import to_camel

UserRole = Literal["seeker", "serviceSeeker", "employer"]
JobType = Literal["fullTime", "partTime"]
JobModality = Literal["onsite", "remote", "hybrid"]
EmployeeStatus = Literal["active", "inactive", "suspended"]
MemorandumSeverity = Literal["leve", "grave", "muy_grave"]

MIN_PASSWORD_LENGTH = 6


def _iso_date(value: str) -> str:
    parsed = parse_iso_datetime(value)
    if parsed is None:
        raise ValueError("must be an ISO-8601 date")
    return value


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("cannot be null")
    return value


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
IsoDateStr = Annotated[str, AfterValidator(_iso_date)]
Password = Annotated[str, StringConstraints(min_length=MIN_PASSWORD_LENGTH)]
Rating = Annotated[float, Field(ge=0, le=5, allow_inf_nan=False)]
Salary = Annotated[float, Field(ge=0, allow_inf_nan=False)]
# Optional in a partial update, but an explicit null is rejected.
NotNull = AfterValidator(_not_null)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialUpdate(ApiModel):
    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Subject(BaseModel):
    subject_id: str
    email: str
    role: str


class MessageResponse(ApiModel):
    message: str


class CreatedResponse(ApiModel):
    message: str
    id: str


# Users and auth


class RegisterRequest(ApiModel):
    name: NonEmptyStr
    email: EmailStr
    password: Password
    role: UserRole
    phone_intl: str | None = None
    city: str | None = None


class LoginRequest(ApiModel):
    email: EmailStr
    password: NonEmptyStr


class ChangePasswordRequest(ApiModel):
    old_password: NonEmptyStr
    new_password: Password


class UserProfile(ApiModel):
    id: str
    role: UserRole
    name: str
    email: str
    phone_intl: str | None = None
    city: str | None = None
    career: str | None = None
    specialty: str | None = None
    summary: str | None = None
    languages: list[Any] = Field(default_factory=list)
    certificates: list[Any] = Field(default_factory=list)
    skills: list[Any] = Field(default_factory=list)
    experiences: list[Any] = Field(default_factory=list)
    service_categories: list[Any] = Field(default_factory=list)
    is_profile_public: bool = True
    previous_works: list[Any] = Field(default_factory=list)
    reviews: list[Any] = Field(default_factory=list)
    rating: float | None = None
    company_name: str | None = None
    tax_id: str | None = None
    is_employer_verified: bool = False
    created_at: str
    updated_at: str


class AuthResponse(ApiModel):
    message: str
    token: str
    user: UserProfile


class UserUpdateRequest(PartialUpdate):
    name: Annotated[NonEmptyStr | None, NotNull] = None
    phone_intl: str | None = None
    city: str | None = None
    career: str | None = None
    specialty: str | None = None
    summary: str | None = None
    languages: list[Any] | None = None
    certificates: list[Any] | None = None
    skills: list[Any] | None = None
    experiences: list[Any] | None = None
    service_categories: list[Any] | None = None
    is_profile_public: Annotated[bool | None, NotNull] = None
    previous_works: list[Any] | None = None
    company_name: str | None = None
    tax_id: str | None = None


class ReviewCreateRequest(ApiModel):
    comment: NonEmptyStr
    rating: Rating


class ReviewResponse(ApiModel):
    message: str
    avg_rating: float


# Companies


class CompanyCreateRequest(ApiModel):
    name: NonEmptyStr
    region: str | None = None
    department: str | None = None
    city: str | None = None
    address: str | None = None
    sector: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    employee_count: str | None = None
    founded_year: str | None = None


class CompanyUpdateRequest(PartialUpdate):
    name: Annotated[NonEmptyStr | None, NotNull] = None
    region: str | None = None
    department: str | None = None
    city: str | None = None
    address: str | None = None
    sector: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    employee_count: str | None = None
    founded_year: str | None = None


class Company(CompanyCreateRequest):
    id: str
    name: str
    created_at: str
    updated_at: str


# Job posts


class JobPostCreateRequest(ApiModel):
    title: NonEmptyStr
    description: NonEmptyStr
    city: NonEmptyStr
    type: JobType
    modality: JobModality
    requirements: list[Any] = Field(default_factory=list)
    obligations: list[Any] = Field(default_factory=list)


class JobPostUpdateRequest(PartialUpdate):
    title: Annotated[NonEmptyStr | None, NotNull] = None
    description: Annotated[NonEmptyStr | None, NotNull] = None
    city: Annotated[NonEmptyStr | None, NotNull] = None
    type: Annotated[JobType | None, NotNull] = None
    modality: Annotated[JobModality | None, NotNull] = None
    requirements: list[Any] | None = None
    obligations: list[Any] | None = None


class JobPost(ApiModel):
    id: str
    title: str
    description: str
    city: str
    employer_id: str
    type: JobType
    modality: JobModality
    requirements: list[Any] = Field(default_factory=list)
    obligations: list[Any] = Field(default_factory=list)
    created_at: str
    updated_at: str


# Job opportunities


class JobOpportunityCreateRequest(ApiModel):
    department: NonEmptyStr
    sector: NonEmptyStr
    company_name: NonEmptyStr
    position: str | None = None
    city: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    requirements: str | None = None
    salary: str | None = None
    schedule: str | None = None
    contract_type: str | None = None
    benefits: str | None = None
    experience: str | None = None
    contact_person: str | None = None
    additional_data: dict[str, Any] = Field(default_factory=dict)


class JobOpportunityUpdateRequest(PartialUpdate):
    department: Annotated[NonEmptyStr | None, NotNull] = None
    sector: Annotated[NonEmptyStr | None, NotNull] = None
    company_name: Annotated[NonEmptyStr | None, NotNull] = None
    position: str | None = None
    city: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    requirements: str | None = None
    salary: str | None = None
    schedule: str | None = None
    contract_type: str | None = None
    benefits: str | None = None
    experience: str | None = None
    contact_person: str | None = None
    additional_data: dict[str, Any] | None = None


class JobOpportunity(JobOpportunityCreateRequest):
    id: str
    department: str
    sector: str
    company_name: str
    created_at: str
    updated_at: str


# Employees and HR records


class EmployeeCreateRequest(ApiModel):
    name: NonEmptyStr
    position: NonEmptyStr
    email: EmailStr
    phone: str | None = None
    hire_date: IsoDateStr
    department: NonEmptyStr
    salary: Salary
    status: EmployeeStatus = "active"
    photo_url: str | None = None
    address: str | None = None


class EmployeeUpdateRequest(PartialUpdate):
    name: Annotated[NonEmptyStr | None, NotNull] = None
    position: Annotated[NonEmptyStr | None, NotNull] = None
    email: Annotated[EmailStr | None, NotNull] = None
    phone: str | None = None
    hire_date: Annotated[IsoDateStr | None, NotNull] = None
    department: Annotated[NonEmptyStr | None, NotNull] = None
    salary: Annotated[Salary | None, NotNull] = None
    status: Annotated[EmployeeStatus | None, NotNull] = None
    photo_url: str | None = None
    address: str | None = None


class Employee(ApiModel):
    id: str
    name: str
    position: str
    email: str
    phone: str | None = None
    hire_date: str
    department: str
    salary: float
    status: EmployeeStatus
    photo_url: str | None = None
    address: str | None = None
    created_at: str
    updated_at: str


class MemorandumCreateRequest(ApiModel):
    title: NonEmptyStr
    description: NonEmptyStr
    date: IsoDateStr
    severity: MemorandumSeverity
    issued_by: NonEmptyStr


class Memorandum(ApiModel):
    id: str
    employee_id: str
    title: str
    description: str
    date: str
    severity: MemorandumSeverity
    issued_by: str
    created_at: str


class RecognitionCreateRequest(ApiModel):
    title: NonEmptyStr
    description: NonEmptyStr
    date: IsoDateStr
    type: NonEmptyStr
    issued_by: NonEmptyStr


class Recognition(ApiModel):
    id: str
    employee_id: str
    title: str
    description: str
    date: str
    type: str
    issued_by: str
    created_at: str


class EmployeeDetail(Employee):
    memorandums: list[Memorandum] = Field(default_factory=list)
    recognitions: list[Recognition] = Field(default_factory=list)


# Emprendimientos


class EmprendimientoCreateRequest(ApiModel):
    name: NonEmptyStr
    description: str | None = None
    products: list[Any] = Field(default_factory=list)
    phone: str | None = None
    image1_url: str | None = None
    image2_url: str | None = None


class EmprendimientoUpdateRequest(PartialUpdate):
    name: Annotated[NonEmptyStr | None, NotNull] = None
    description: str | None = None
    products: list[Any] | None = None
    phone: str | None = None
    image1_url: str | None = None
    image2_url: str | None = None


class Emprendimiento(EmprendimientoCreateRequest):
    id: str
    name: str
    owner_id: str | None = None
    created_at: str
    updated_at: str


# AI chat


class ChatAskRequest(ApiModel):
    message: NonEmptyStr
    context: dict[str, Any] | None = None


class ChatReply(ApiModel):
    reply: str
    suggestions: list[str] = Field(default_factory=list)


class ChatAskResponse(ApiModel):
    ok: bool = True
    data: ChatReply


class JobSearchRequest(ApiModel):
    user_query: NonEmptyStr


class JobSearchResponse(ApiModel):
    result: str
