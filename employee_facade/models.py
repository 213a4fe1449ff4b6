"""
Employee directory data model.

Wire field names follow the upstream directory (``employee_name``,
``employee_salary``...) and are used unchanged on the facade's own responses.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

MIN_AGE = 16
MAX_AGE = 75
MIN_SALARY = 1


class Employee(BaseModel):
    """Immutable employee record as returned by the upstream directory."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = Field(alias="employee_name")
    salary: int = Field(alias="employee_salary")
    age: int | None = Field(default=None, alias="employee_age")
    title: str | None = Field(default=None, alias="employee_title")
    email: str | None = Field(default=None, alias="employee_email")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        # Some upstream builds emit numeric ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class CreateEmployeeRequest(BaseModel):
    """
    Body of ``POST /api/v1/``.

    Every field is optional so that missing values reach ``validate``
    and come back as field errors instead of a binding failure.
    """

    name: str | None = None
    salary: int | None = None
    age: int | None = None
    title: str | None = None


class FieldError(BaseModel):
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def validate(request: CreateEmployeeRequest) -> list[FieldError]:
    """Check a create request against the directory's constraints.

    Returns an empty list when the request may be forwarded upstream.
    """
    errors: list[FieldError] = []

    if request.name is None or not request.name.strip():
        errors.append(FieldError(field="name", message="Name is required and cannot be blank"))

    if request.salary is None:
        errors.append(FieldError(field="salary", message="Salary is required"))
    elif request.salary < MIN_SALARY:
        errors.append(FieldError(field="salary", message="Salary must be greater than zero"))

    if request.age is None:
        errors.append(FieldError(field="age", message="Age is required"))
    elif request.age < MIN_AGE:
        errors.append(FieldError(field="age", message=f"Age must be at least {MIN_AGE}"))
    elif request.age > MAX_AGE:
        errors.append(FieldError(field="age", message=f"Age must not exceed {MAX_AGE}"))

    if request.title is None or not request.title.strip():
        errors.append(FieldError(field="title", message="Title is required and cannot be blank"))

    return errors


class Envelope(BaseModel, Generic[T]):
    """Upstream response wrapper; everything except ``data`` is ignored."""

    model_config = ConfigDict(extra="ignore")

    data: T | None = None


class DeleteEmployeeInput(BaseModel):
    name: str
