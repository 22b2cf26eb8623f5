from __future__ import annotations

import json
import logging
import os
import secrets
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chambita.chat import (
    DEFAULT_BASE_URL,
    FALLBACK_JOB_SEARCH_TEXT,
    AIChatClient,
    safe_external_call,
)
from chambita.errors import (
    ApiError,
    ConfigurationError,
    Conflict,
    Forbidden,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from chambita.models import (
    AuthResponse,
    ChangePasswordRequest,
    ChatAskRequest,
    ChatAskResponse,
    Company,
    CompanyCreateRequest,
    CompanyUpdateRequest,
    CreatedResponse,
    Employee,
    EmployeeCreateRequest,
    EmployeeDetail,
    EmployeeUpdateRequest,
    Emprendimiento,
    EmprendimientoCreateRequest,
    EmprendimientoUpdateRequest,
    JobOpportunity,
    JobOpportunityCreateRequest,
    JobOpportunityUpdateRequest,
    JobPost,
    JobPostCreateRequest,
    JobPostUpdateRequest,
    JobSearchRequest,
    JobSearchResponse,
    LoginRequest,
    Memorandum,
    MemorandumCreateRequest,
    MessageResponse,
    Recognition,
    RecognitionCreateRequest,
    RegisterRequest,
    ReviewCreateRequest,
    ReviewResponse,
    Subject,
    UserProfile,
    UserUpdateRequest,
)
from chambita.repository import DEFAULT_DB_PATH, MarketplaceRepository
from chambita.security import (
    DEFAULT_TOKEN_LIFETIME,
    TokenService,
    extract_bearer_token,
    hash_password,
    parse_token_lifetime,
    verify_password,
)
from chambita.updates import (
    COMPANIES,
    EMPLOYEES,
    EMPRENDIMIENTOS,
    JOB_OPPORTUNITIES,
    JOB_POSTS,
    MEMORANDUMS,
    RECOGNITIONS,
    USERS,
)

DEFAULT_ENVIRONMENT = "production"
DEFAULT_PORT = 3000
SERVICE_NAME = "chambita"
API_VERSION = "1.0.0"
LOGGER = logging.getLogger("chambita.api")

# Location prefixes that name where a value came from rather than which field.
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def describe_validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    described = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_PREFIXES and len(location) > 1:
            location = location[1:]
        described.append(
            {
                "field": ".".join(location) or "body",
                "message": str(error.get("msg", "Invalid value")),
                "type": str(error.get("type", "value_error")),
            }
        )
    return described


def resolve_jwt_secret(jwt_secret: str | None) -> str:
    resolved = (jwt_secret or os.getenv("JWT_SECRET", "")).strip()
    if resolved:
        return resolved
    LOGGER.warning("JWT_SECRET is not set; issued tokens will not survive a restart")
    return secrets.token_urlsafe(48)


def create_app(
    *,
    database_path: str | None = None,
    jwt_secret: str | None = None,
    token_lifetime: str | int | None = None,
    openai_api_key: str | None = None,
    openai_base_url: str | None = None,
    environment: str | None = None,
) -> FastAPI:
    resolved_path = database_path or os.getenv("CHAMBITA_DB_PATH", DEFAULT_DB_PATH)
    resolved_lifetime = parse_token_lifetime(
        token_lifetime or os.getenv("JWT_EXPIRES_IN", DEFAULT_TOKEN_LIFETIME)
    )
    resolved_api_key = (openai_api_key or os.getenv("OPENAI_API_KEY", "")).strip() or None
    resolved_base_url = openai_base_url or os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL)
    resolved_environment = (
        environment or os.getenv("CHAMBITA_ENV", DEFAULT_ENVIRONMENT)
    ).strip().lower()
    include_details = resolved_environment == "development"

    repository = MarketplaceRepository(database_path=resolved_path)
    tokens = TokenService(resolve_jwt_secret(jwt_secret), resolved_lifetime)
    chat_client = AIChatClient(resolved_api_key, base_url=resolved_base_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(repository.connect)
        app.state.repository = repository
        app.state.tokens = tokens
        app.state.chat_client = chat_client
        try:
            yield
        finally:
            await run_in_threadpool(repository.close)

    app = FastAPI(title="Chambita API", version=API_VERSION, lifespan=lifespan)
    app.state.environment = resolved_environment

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            LOGGER.exception(
                json.dumps(
                    {
                        "event": "request_complete",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": 500,
                        "duration_ms": round(duration_ms, 3),
                        "error": str(exc),
                    }
                )
            )
            content: dict[str, Any] = {
                "error": "Internal server error",
                "code": "INTERNAL_ERROR",
                "requestId": request_id,
            }
            if include_details:
                content["details"] = str(exc)
            return JSONResponse(
                status_code=500,
                content=content,
                headers={"x-request-id": request_id},
            )

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["x-request-id"] = request_id
        LOGGER.info(
            json.dumps(
                {
                    "event": "request_complete",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 3),
                    "source_ip": request.client.host if request.client else None,
                }
            )
        )
        return response

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error(
                json.dumps(
                    {
                        "event": "api_error",
                        "request_id": getattr(request.state, "request_id", None),
                        "code": exc.code,
                        "error": exc.message,
                    }
                )
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload(include_details=include_details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        failure = ValidationFailed(describe_validation_errors(exc))
        return JSONResponse(
            status_code=failure.status_code,
            content=failure.payload(include_details=include_details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    def require_subject(request: Request) -> Subject:
        token = extract_bearer_token(request.headers.get("authorization"))
        subject = request.app.state.tokens.decode(token)
        request.state.subject = subject
        return subject

    authenticated = [Depends(require_subject)]

    @app.get("/")
    async def index() -> dict[str, Any]:
        return {
            "message": "Chambita API",
            "version": API_VERSION,
            "endpoints": {
                "auth": "/api/auth",
                "users": "/api/users",
                "jobs": "/api/jobs",
                "companies": "/api/companies",
                "employees": "/api/employees",
                "emprendimientos": "/api/emprendimientos",
                "chat": "/api/chat",
                "openai": "/api/openai",
            },
        }

    @app.get("/health")
    async def health(request: Request):
        connected = await run_in_threadpool(request.app.state.repository.ping)
        if not connected:
            return JSONResponse(
                status_code=503,
                content={"status": "error", "service": SERVICE_NAME, "database": "disconnected"},
            )
        return {"status": "ok", "service": SERVICE_NAME, "database": "connected"}

    # Auth

    @app.post("/api/auth/register", status_code=201)
    async def register(payload: RegisterRequest, request: Request) -> AuthResponse:
        repo: MarketplaceRepository = request.app.state.repository
        if await run_in_threadpool(repo.email_exists, payload.email):
            raise Conflict("Email is already registered")
        password_hash = await run_in_threadpool(hash_password, payload.password)
        user = await run_in_threadpool(repo.create_user, payload, password_hash)
        token = request.app.state.tokens.issue(subject_id=user.id, email=user.email, role=user.role)
        LOGGER.info("registered user id=%s role=%s", user.id, user.role)
        return AuthResponse(message="User registered successfully", token=token, user=user)

    @app.post("/api/auth/login")
    async def login(payload: LoginRequest, request: Request) -> AuthResponse:
        credentials = await run_in_threadpool(
            request.app.state.repository.get_user_credentials,
            payload.email,
        )
        if credentials is None:
            raise Unauthenticated("Invalid credentials")
        user, password_hash = credentials
        if not await run_in_threadpool(verify_password, payload.password, password_hash):
            raise Unauthenticated("Invalid credentials")
        token = request.app.state.tokens.issue(subject_id=user.id, email=user.email, role=user.role)
        return AuthResponse(message="Login successful", token=token, user=user)

    @app.get("/api/auth/me")
    async def me(
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> UserProfile:
        user = await run_in_threadpool(request.app.state.repository.get_user, subject.subject_id)
        if user is None:
            raise NotFound("User not found")
        return user

    @app.put("/api/auth/change-password")
    async def change_password(
        payload: ChangePasswordRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        repo: MarketplaceRepository = request.app.state.repository
        current_hash = await run_in_threadpool(repo.get_password_hash, subject.subject_id)
        if current_hash is None:
            raise NotFound("User not found")
        if not await run_in_threadpool(verify_password, payload.old_password, current_hash):
            raise Unauthenticated("Current password is incorrect")
        new_hash = await run_in_threadpool(hash_password, payload.new_password)
        await run_in_threadpool(repo.set_password_hash, subject.subject_id, new_hash)
        return MessageResponse(message="Password updated successfully")

    # Users

    @app.get("/api/users")
    async def list_users(
        request: Request,
        role: str | None = None,
        city: str | None = None,
        is_profile_public: bool | None = Query(default=None, alias="isProfilePublic"),
        search: str | None = None,
    ) -> list[UserProfile]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_users(
                role=role,
                city=city,
                is_profile_public=is_profile_public,
                search=search,
            )
        )

    @app.get("/api/users/{user_id}")
    async def get_user(user_id: str, request: Request) -> UserProfile:
        user = await run_in_threadpool(request.app.state.repository.get_user, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    @app.put("/api/users/{user_id}")
    async def update_user(
        user_id: str,
        payload: UserUpdateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        if subject.subject_id != user_id:
            raise Forbidden("You can only update your own profile")
        await run_in_threadpool(
            request.app.state.repository.update_row,
            USERS,
            user_id,
            payload.changes(),
        )
        return MessageResponse(message="User updated successfully")

    @app.delete("/api/users/{user_id}")
    async def delete_user(
        user_id: str,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        if subject.subject_id != user_id:
            raise Forbidden("You can only delete your own profile")
        deleted = await run_in_threadpool(request.app.state.repository.delete_row, USERS, user_id)
        if not deleted:
            raise NotFound("User not found")
        return MessageResponse(message="User deleted successfully")

    @app.post("/api/users/{user_id}/reviews")
    async def add_review(
        user_id: str,
        payload: ReviewCreateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> ReviewResponse:
        average = await run_in_threadpool(
            lambda: request.app.state.repository.add_review(
                user_id,
                author_id=subject.subject_id,
                comment=payload.comment,
                rating=payload.rating,
            )
        )
        return ReviewResponse(message="Review added successfully", avg_rating=average)

    # Job posts

    @app.get("/api/jobs/posts")
    async def list_job_posts(
        request: Request,
        city: str | None = None,
        job_type: str | None = Query(default=None, alias="type"),
        modality: str | None = None,
        employer_id: str | None = Query(default=None, alias="employerId"),
    ) -> list[JobPost]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_job_posts(
                city=city,
                job_type=job_type,
                modality=modality,
                employer_id=employer_id,
            )
        )

    @app.get("/api/jobs/posts/{post_id}")
    async def get_job_post(post_id: str, request: Request) -> JobPost:
        post = await run_in_threadpool(request.app.state.repository.get_job_post, post_id)
        if post is None:
            raise NotFound("Job post not found")
        return post

    @app.post("/api/jobs/posts", status_code=201)
    async def create_job_post(
        payload: JobPostCreateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> CreatedResponse:
        post_id = await run_in_threadpool(
            request.app.state.repository.create_job_post,
            payload,
            subject.subject_id,
        )
        return CreatedResponse(message="Job post created successfully", id=post_id)

    @app.put("/api/jobs/posts/{post_id}")
    async def update_job_post(
        post_id: str,
        payload: JobPostUpdateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.update_owned,
            JOB_POSTS,
            post_id,
            subject.subject_id,
            payload.changes(),
        )
        return MessageResponse(message="Job post updated successfully")

    @app.delete("/api/jobs/posts/{post_id}")
    async def delete_job_post(
        post_id: str,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.delete_owned,
            JOB_POSTS,
            post_id,
            subject.subject_id,
        )
        return MessageResponse(message="Job post deleted successfully")

    # Job opportunities

    @app.get("/api/jobs/opportunities")
    async def list_job_opportunities(
        request: Request,
        department: str | None = None,
        sector: str | None = None,
        city: str | None = None,
        search: str | None = None,
    ) -> list[JobOpportunity]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_job_opportunities(
                department=department,
                sector=sector,
                city=city,
                search=search,
            )
        )

    @app.get("/api/jobs/opportunities/{opportunity_id}")
    async def get_job_opportunity(opportunity_id: str, request: Request) -> JobOpportunity:
        opportunity = await run_in_threadpool(
            request.app.state.repository.get_job_opportunity,
            opportunity_id,
        )
        if opportunity is None:
            raise NotFound("Job opportunity not found")
        return opportunity

    @app.post("/api/jobs/opportunities", dependencies=authenticated, status_code=201)
    async def create_job_opportunity(
        payload: JobOpportunityCreateRequest,
        request: Request,
    ) -> CreatedResponse:
        opportunity_id = await run_in_threadpool(
            request.app.state.repository.create_job_opportunity,
            payload,
        )
        return CreatedResponse(message="Job opportunity created successfully", id=opportunity_id)

    @app.put("/api/jobs/opportunities/{opportunity_id}", dependencies=authenticated)
    async def update_job_opportunity(
        opportunity_id: str,
        payload: JobOpportunityUpdateRequest,
        request: Request,
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.update_row,
            JOB_OPPORTUNITIES,
            opportunity_id,
            payload.changes(),
        )
        return MessageResponse(message="Job opportunity updated successfully")

    @app.delete("/api/jobs/opportunities/{opportunity_id}", dependencies=authenticated)
    async def delete_job_opportunity(opportunity_id: str, request: Request) -> MessageResponse:
        deleted = await run_in_threadpool(
            request.app.state.repository.delete_row,
            JOB_OPPORTUNITIES,
            opportunity_id,
        )
        if not deleted:
            raise NotFound("Job opportunity not found")
        return MessageResponse(message="Job opportunity deleted successfully")

    # Companies

    @app.get("/api/companies")
    async def list_companies(
        request: Request,
        department: str | None = None,
        city: str | None = None,
        sector: str | None = None,
        region: str | None = None,
        search: str | None = None,
    ) -> list[Company]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_companies(
                department=department,
                city=city,
                sector=sector,
                region=region,
                search=search,
            )
        )

    @app.get("/api/companies/{company_id}")
    async def get_company(company_id: str, request: Request) -> Company:
        company = await run_in_threadpool(request.app.state.repository.get_company, company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    @app.post("/api/companies", dependencies=authenticated, status_code=201)
    async def create_company(payload: CompanyCreateRequest, request: Request) -> CreatedResponse:
        company_id = await run_in_threadpool(request.app.state.repository.create_company, payload)
        return CreatedResponse(message="Company created successfully", id=company_id)

    @app.put("/api/companies/{company_id}", dependencies=authenticated)
    async def update_company(
        company_id: str,
        payload: CompanyUpdateRequest,
        request: Request,
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.update_row,
            COMPANIES,
            company_id,
            payload.changes(),
        )
        return MessageResponse(message="Company updated successfully")

    @app.delete("/api/companies/{company_id}", dependencies=authenticated)
    async def delete_company(company_id: str, request: Request) -> MessageResponse:
        deleted = await run_in_threadpool(
            request.app.state.repository.delete_row,
            COMPANIES,
            company_id,
        )
        if not deleted:
            raise NotFound("Company not found")
        return MessageResponse(message="Company deleted successfully")

    # Employees

    @app.get("/api/employees", dependencies=authenticated)
    async def list_employees(
        request: Request,
        department: str | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> list[Employee]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_employees(
                department=department,
                status=status,
                search=search,
            )
        )

    @app.get("/api/employees/{employee_id}", dependencies=authenticated)
    async def get_employee(employee_id: str, request: Request) -> EmployeeDetail:
        employee = await run_in_threadpool(
            request.app.state.repository.get_employee_detail,
            employee_id,
        )
        if employee is None:
            raise NotFound("Employee not found")
        return employee

    @app.post("/api/employees", dependencies=authenticated, status_code=201)
    async def create_employee(payload: EmployeeCreateRequest, request: Request) -> CreatedResponse:
        employee_id = await run_in_threadpool(request.app.state.repository.create_employee, payload)
        return CreatedResponse(message="Employee created successfully", id=employee_id)

    @app.put("/api/employees/{employee_id}", dependencies=authenticated)
    async def update_employee(
        employee_id: str,
        payload: EmployeeUpdateRequest,
        request: Request,
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.update_row,
            EMPLOYEES,
            employee_id,
            payload.changes(),
        )
        return MessageResponse(message="Employee updated successfully")

    @app.delete("/api/employees/{employee_id}", dependencies=authenticated)
    async def delete_employee(employee_id: str, request: Request) -> MessageResponse:
        deleted = await run_in_threadpool(
            request.app.state.repository.delete_row,
            EMPLOYEES,
            employee_id,
        )
        if not deleted:
            raise NotFound("Employee not found")
        return MessageResponse(message="Employee deleted successfully")

    @app.get("/api/employees/{employee_id}/memorandums", dependencies=authenticated)
    async def list_memorandums(employee_id: str, request: Request) -> list[Memorandum]:
        return await run_in_threadpool(request.app.state.repository.list_memorandums, employee_id)

    @app.post(
        "/api/employees/{employee_id}/memorandums",
        dependencies=authenticated,
        status_code=201,
    )
    async def create_memorandum(
        employee_id: str,
        payload: MemorandumCreateRequest,
        request: Request,
    ) -> CreatedResponse:
        memorandum_id = await run_in_threadpool(
            request.app.state.repository.create_memorandum,
            employee_id,
            payload,
        )
        return CreatedResponse(message="Memorandum created successfully", id=memorandum_id)

    @app.delete(
        "/api/employees/{employee_id}/memorandums/{memorandum_id}",
        dependencies=authenticated,
    )
    async def delete_memorandum(
        employee_id: str,
        memorandum_id: str,
        request: Request,
    ) -> MessageResponse:
        deleted = await run_in_threadpool(
            request.app.state.repository.delete_child,
            MEMORANDUMS,
            employee_id,
            memorandum_id,
        )
        if not deleted:
            raise NotFound("Memorandum not found")
        return MessageResponse(message="Memorandum deleted successfully")

    @app.get("/api/employees/{employee_id}/recognitions", dependencies=authenticated)
    async def list_recognitions(employee_id: str, request: Request) -> list[Recognition]:
        return await run_in_threadpool(request.app.state.repository.list_recognitions, employee_id)

    @app.post(
        "/api/employees/{employee_id}/recognitions",
        dependencies=authenticated,
        status_code=201,
    )
    async def create_recognition(
        employee_id: str,
        payload: RecognitionCreateRequest,
        request: Request,
    ) -> CreatedResponse:
        recognition_id = await run_in_threadpool(
            request.app.state.repository.create_recognition,
            employee_id,
            payload,
        )
        return CreatedResponse(message="Recognition created successfully", id=recognition_id)

    @app.delete(
        "/api/employees/{employee_id}/recognitions/{recognition_id}",
        dependencies=authenticated,
    )
    async def delete_recognition(
        employee_id: str,
        recognition_id: str,
        request: Request,
    ) -> MessageResponse:
        deleted = await run_in_threadpool(
            request.app.state.repository.delete_child,
            RECOGNITIONS,
            employee_id,
            recognition_id,
        )
        if not deleted:
            raise NotFound("Recognition not found")
        return MessageResponse(message="Recognition deleted successfully")

    # Emprendimientos

    @app.get("/api/emprendimientos")
    async def list_emprendimientos(
        request: Request,
        owner_id: str | None = Query(default=None, alias="ownerId"),
        search: str | None = None,
    ) -> list[Emprendimiento]:
        return await run_in_threadpool(
            lambda: request.app.state.repository.list_emprendimientos(
                owner_id=owner_id,
                search=search,
            )
        )

    @app.get("/api/emprendimientos/{emprendimiento_id}")
    async def get_emprendimiento(emprendimiento_id: str, request: Request) -> Emprendimiento:
        emprendimiento = await run_in_threadpool(
            request.app.state.repository.get_emprendimiento,
            emprendimiento_id,
        )
        if emprendimiento is None:
            raise NotFound("Emprendimiento not found")
        return emprendimiento

    @app.post("/api/emprendimientos", status_code=201)
    async def create_emprendimiento(
        payload: EmprendimientoCreateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> CreatedResponse:
        emprendimiento_id = await run_in_threadpool(
            request.app.state.repository.create_emprendimiento,
            payload,
            subject.subject_id,
        )
        return CreatedResponse(message="Emprendimiento created successfully", id=emprendimiento_id)

    @app.put("/api/emprendimientos/{emprendimiento_id}")
    async def update_emprendimiento(
        emprendimiento_id: str,
        payload: EmprendimientoUpdateRequest,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.update_owned,
            EMPRENDIMIENTOS,
            emprendimiento_id,
            subject.subject_id,
            payload.changes(),
        )
        return MessageResponse(message="Emprendimiento updated successfully")

    @app.delete("/api/emprendimientos/{emprendimiento_id}")
    async def delete_emprendimiento(
        emprendimiento_id: str,
        request: Request,
        subject: Subject = Depends(require_subject),
    ) -> MessageResponse:
        await run_in_threadpool(
            request.app.state.repository.delete_owned,
            EMPRENDIMIENTOS,
            emprendimiento_id,
            subject.subject_id,
        )
        return MessageResponse(message="Emprendimiento deleted successfully")

    # AI chat

    @app.post("/api/chat/ask")
    async def chat_ask(payload: ChatAskRequest, request: Request) -> ChatAskResponse:
        client: AIChatClient = request.app.state.chat_client
        if not client.configured:
            raise ConfigurationError()
        reply = await safe_external_call(lambda: client.ask(payload.message, payload.context))
        return ChatAskResponse(data=reply)

    @app.get("/api/chat/health")
    async def chat_health(request: Request) -> dict[str, Any]:
        configured = request.app.state.chat_client.configured
        return {
            "status": "OK" if configured else "NOT_CONFIGURED",
            "service": "Chat AI",
            "apiKeyConfigured": configured,
        }

    @app.post("/api/openai")
    async def job_search(payload: JobSearchRequest, request: Request):
        client: AIChatClient = request.app.state.chat_client
        try:
            if not client.configured:
                raise ConfigurationError()
            result = await safe_external_call(lambda: client.search_jobs(payload.user_query))
        except ApiError as exc:
            body = exc.payload(include_details=include_details)
            body["fallback"] = FALLBACK_JOB_SEARCH_TEXT
            return JSONResponse(status_code=exc.status_code, content=body)
        return JobSearchResponse(result=result)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    port = int(os.getenv("CHAMBITA_PORT", DEFAULT_PORT))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
