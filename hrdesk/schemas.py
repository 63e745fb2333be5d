from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from hrdesk.models import ActiveStatus, LeaveStatus, LinkTab, Role, TodoPriority, TodoStatus


def _strip_required(value: str | None, field: str) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field} must not be blank")
    return stripped


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    iat: int
    exp: int


class PaginationRead(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    model_config = ConfigDict(from_attributes=True)


class UserBrief(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=256)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role = Role.EMPLOYEE
    department_id: int | None = Field(default=None, ge=1)


class UserUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    role: Role | None = None
    department_id: int | None = Field(default=None, ge=1)
    password: str | None = Field(default=None, min_length=8, max_length=256)

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_name(cls, value: str | None, info: ValidationInfo) -> str | None:
        return _strip_required(value, info.field_name)


class UserRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    department_id: int | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class DepartmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class DepartmentRead(BaseModel):
    id: int
    name: str
    description: str | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    about: str | None = Field(default=None, max_length=500)
    country: str = Field(min_length=1, max_length=50)
    state: str = Field(min_length=1, max_length=50)
    city: str = Field(min_length=1, max_length=50)
    status: ActiveStatus = ActiveStatus.ACTIVE


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    about: str | None = Field(default=None, max_length=500)
    country: str | None = Field(default=None, min_length=1, max_length=50)
    state: str | None = Field(default=None, min_length=1, max_length=50)
    city: str | None = Field(default=None, min_length=1, max_length=50)
    status: ActiveStatus | None = None


class ClientRead(BaseModel):
    id: int
    name: str
    email: str
    about: str | None
    country: str
    state: str
    city: str
    status: ActiveStatus
    created_by: int | None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ClientListResponse(BaseModel):
    clients: list[ClientRead]
    pagination: PaginationRead


class ClientsByCountryItem(BaseModel):
    country: str
    count: int


class ClientStatsResponse(BaseModel):
    total: int
    active: int
    inactive: int
    clients_by_country: list[ClientsByCountryItem]
    recent_clients: list[ClientRead]


class ProjectCreate(BaseModel):
    project_name: str = Field(min_length=1, max_length=100)
    project_description: str = Field(min_length=1, max_length=1000)
    project_technology: str = Field(min_length=1, max_length=200)
    client_id: int = Field(ge=1)
    team_members: list[int] = Field(min_length=1)
    project_start_date: date
    project_end_date: date | None = None
    status: ActiveStatus = ActiveStatus.ACTIVE

    @field_validator("team_members")
    @classmethod
    def _dedupe_members(cls, value: list[int]) -> list[int]:
        return list(dict.fromkeys(value))

    @field_validator("project_name", "project_description", "project_technology")
    @classmethod
    def _strip_text(cls, value: str, info: ValidationInfo) -> str:
        return _strip_required(value, info.field_name)


class ProjectUpdate(BaseModel):
    project_name: str | None = Field(default=None, min_length=1, max_length=100)
    project_description: str | None = Field(default=None, min_length=1, max_length=1000)
    project_technology: str | None = Field(default=None, min_length=1, max_length=200)
    client_id: int | None = Field(default=None, ge=1)
    team_members: list[int] | None = None
    project_start_date: date | None = None
    project_end_date: date | None = None
    status: ActiveStatus | None = None

    @field_validator("team_members")
    @classmethod
    def _dedupe_members(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        return list(dict.fromkeys(value))

    @field_validator("project_name", "project_description", "project_technology")
    @classmethod
    def _strip_text(cls, value: str | None, info: ValidationInfo) -> str | None:
        return _strip_required(value, info.field_name)


class ProjectRead(BaseModel):
    id: int
    project_name: str
    project_description: str
    project_technology: str
    client_id: int
    client_name: str | None = None
    team_members: list[UserBrief]
    project_start_date: date
    project_end_date: date | None
    status: ActiveStatus
    created_by: int | None
    created_at: datetime | None = None


class ProjectsByClientItem(BaseModel):
    client_id: int
    client_name: str | None
    count: int


class ProjectStatsResponse(BaseModel):
    total: int
    active: int
    inactive: int
    projects_by_client: list[ProjectsByClientItem]


class TodoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    due_date: datetime
    # Kept as plain strings so unknown values surface as 400 from the lifecycle rules.
    priority: str = TodoPriority.MEDIUM.value
    employee_id: int = Field(ge=1)
    project_id: int | None = Field(default=None, ge=1)
    tags: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=500)
    is_hidden_for_employee: bool = False

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return _strip_required(value, "title")


class TodoUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    due_date: datetime | None = None
    priority: str | None = None
    project_id: int | None = Field(default=None, ge=1)
    tags: list[str] | None = None
    notes: str | None = Field(default=None, max_length=500)
    is_hidden_for_employee: bool | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        return _strip_required(value, "title")


class TodoStatusUpdate(BaseModel):
    status: str


class TodoBulkStatusUpdate(BaseModel):
    todo_ids: list[int] = Field(default_factory=list)
    status: str


class TodoBulkStatusResponse(BaseModel):
    updated: int
    status: TodoStatus


class TodoRead(BaseModel):
    id: int
    title: str
    description: str | None
    notes: str | None
    tags: list[str]
    due_date: datetime
    priority: TodoPriority
    status: TodoStatus
    employee_id: int
    assigned_by: int
    project_id: int | None
    is_hidden_for_employee: bool
    completed_at: datetime | None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_overdue: bool
    days_remaining: int


class TodoStatsRead(BaseModel):
    pending: int = 0
    completed: int = 0
    overdue: int = 0
    total: int = 0
    overdue_count: int = 0


class LeaveCreateRequest(BaseModel):
    employee_id: int | None = Field(default=None, ge=1)
    from_date: date
    to_date: date
    reason: str = Field(min_length=1, max_length=500)
    status: LeaveStatus | None = None
    is_half_day: bool = False

    @field_validator("reason")
    @classmethod
    def _strip_reason(cls, value: str) -> str:
        return _strip_required(value, "reason")


class LeaveUpdateRequest(BaseModel):
    from_date: date | None = None
    to_date: date | None = None
    reason: str | None = Field(default=None, min_length=1, max_length=500)
    status: LeaveStatus | None = None
    is_half_day: bool | None = None

    @field_validator("reason")
    @classmethod
    def _strip_reason(cls, value: str | None) -> str | None:
        return _strip_required(value, "reason")


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    from_date: date
    to_date: date
    reason: str
    status: LeaveStatus
    is_half_day: bool
    created_by: int | None
    created_at: datetime | None = None
    duration_days: int

    model_config = ConfigDict(from_attributes=True)


class LeaveListResponse(BaseModel):
    leaves: list[LeaveRead]
    pagination: PaginationRead


class LeaveStatsRead(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int


class DashboardStatsRead(BaseModel):
    total_admins: int
    total_employees: int
    total_departments: int
    total_clients: int
    total_projects: int
    active_projects: int



class LinkCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    url: str = Field(min_length=1, max_length=2048, pattern=r"^https?://\S+$")
    tab: LinkTab

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return _strip_required(value, "title")


class LinkUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    url: str | None = Field(default=None, min_length=1, max_length=2048, pattern=r"^https?://\S+$")
    tab: LinkTab | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        return _strip_required(value, "title")


class LinkRead(BaseModel):
    id: int
    title: str
    url: str
    tab: LinkTab
    created_by: int | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LinkListResponse(BaseModel):
    links: list[LinkRead]
    pagination: PaginationRead


class LinkStatsRead(BaseModel):
    git: int
    excel: int
    codebase: int
    total: int


class ReportCreate(BaseModel):
    report: str = Field(min_length=1, max_length=5000)
    start_time: datetime
    end_time: datetime
    break_minutes: int = Field(default=0, ge=0, le=24 * 60)
    note: str | None = Field(default=None, max_length=1000)

    @field_validator("report")
    @classmethod
    def _strip_report(cls, value: str) -> str:
        return _strip_required(value, "report")


class ReportUpdate(BaseModel):
    report: str | None = Field(default=None, min_length=1, max_length=5000)
    start_time: datetime | None = None
    end_time: datetime | None = None
    break_minutes: int | None = Field(default=None, ge=0, le=24 * 60)
    note: str | None = Field(default=None, max_length=1000)

    @field_validator("report")
    @classmethod
    def _strip_report(cls, value: str | None) -> str | None:
        return _strip_required(value, "report")


class ReportRead(BaseModel):
    id: int
    employee_id: int
    employee_name: str
    report: str
    start_time: datetime
    end_time: datetime
    break_minutes: int
    total_minutes: int
    working_minutes: int
    todays_total_hours: str
    todays_working_hours: str
    note: str | None
    created_at: datetime | None = None


class HolidayCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    holiday_date: date

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return _strip_required(value, "title")


class HolidayUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    holiday_date: date | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        return _strip_required(value, "title")


class HolidayRead(BaseModel):
    id: int
    title: str
    holiday_date: date

    model_config = ConfigDict(from_attributes=True)
