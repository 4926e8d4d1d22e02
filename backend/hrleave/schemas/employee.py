# ruff: noqa: TC003
from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from hrleave.models.enums import EmploymentStatus


class UpsertEmployeeRequest(BaseModel):
    """Request body for upserting an employee in the directory stub."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    supervisor_id: str | None = Field(default=None, min_length=1, max_length=64)
    delegate_ids: list[str] = []
    status: EmploymentStatus = EmploymentStatus.ACTIVE
    hire_date: date | None = None


class EmployeeResponse(BaseModel):
    """Response schema for an employee."""

    id: str
    first_name: str
    last_name: str
    email: str | None
    department: str | None
    supervisor_id: str | None
    delegate_ids: list[str]
    status: EmploymentStatus
    hire_date: date | None


class EmployeeListResponse(BaseModel):
    """List of employees."""

    items: list[EmployeeResponse]
    total: int
