from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, Literal
from datetime import date, datetime

Condition = Literal["New", "Good", "Fair", "Poor"]
LogStatus = Literal["Borrowed", "Returned"]
Availability = Literal["available", "borrowed"]
Role = Literal["admin"]

MIN_PURPOSE_LENGTH = 10
MIN_PASSWORD_LENGTH = 6


class ComponentIn(BaseModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    condition: Condition = "Good"
    description: str = ""

class ComponentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    total_quantity: Optional[int] = Field(default=None, ge=0)
    condition: Optional[Condition] = None
    description: Optional[str] = None

class Component(BaseModel):
    id: str
    name: str
    category: str
    total_quantity: int
    available_quantity: int
    condition: Condition
    description: str
    ai_hint: str
    image_url: str
    created_at: datetime
    updated_at: datetime

class ComponentsMeta(BaseModel):
    total: int
    limit: int
    offset: int
    total_pages: int


class CategoryIn(BaseModel):
    name: str = Field(min_length=1)

class Category(BaseModel):
    id: str
    name: str


class IssueRequest(BaseModel):
    component_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    user_name: str = Field(min_length=1)
    contact_number: Optional[str] = None
    purpose: str
    expected_return_date: date

    @field_validator("user_name", "purpose", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("purpose")
    @classmethod
    def _purpose_detailed(cls, v: str) -> str:
        if len(v) < MIN_PURPOSE_LENGTH:
            raise ValueError("Please provide a more detailed purpose.")
        return v

    @field_validator("expected_return_date")
    @classmethod
    def _not_in_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("Expected return date cannot be in the past.")
        return v

class ReturnRequest(BaseModel):
    return_date: Optional[datetime] = None
    remarks: Optional[str] = None


class TransactionLog(BaseModel):
    id: str
    component_id: str
    component_name: str
    user_name: str
    contact_number: Optional[str] = None
    quantity: int
    status: LogStatus
    issue_date: datetime
    return_date: Optional[datetime] = None
    expected_return_date: Optional[date] = None
    purpose: Optional[str] = None
    remarks: Optional[str] = None
    borrow_id: Optional[str] = None
    schema_version: int = 1

class LogUpdate(BaseModel):
    # quantity and status are fixed once written
    user_name: Optional[str] = Field(default=None, min_length=1)
    contact_number: Optional[str] = None
    expected_return_date: Optional[date] = None
    purpose: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("user_name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class SanityCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    purpose: str
    component_name: str = Field(alias="componentName")

class SanityCheckResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_safe: bool = Field(alias="isSafe")
    warning_message: str = Field(default="", alias="warningMessage")


class InventorySummary(BaseModel):
    total: int
    available: int
    borrowed: int
    components: int
    open_borrows: int


class UserIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self

class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None

class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self

class User(BaseModel):
    id: str
    name: str
    email: str
    role: Role = "admin"
    avatar: str
