from __future__ import annotations

from fastapi import APIRouter

from hrleave.api.deps import ActorDep, PolicyManagerDep
from hrleave.exceptions import NotFound
from hrleave.schemas.employee import EmployeeListResponse, EmployeeResponse, UpsertEmployeeRequest
from hrleave.services.employee import EmployeeInfo, get_employee_directory

employees_router = APIRouter(prefix="/employees", tags=["employees"])


def _build_employee_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        department=employee.department,
        supervisor_id=employee.supervisor_id,
        delegate_ids=employee.delegate_ids,
        status=employee.status,
        hire_date=employee.hire_date,
    )


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
async def upsert_employee(
    employee_id: str,
    payload: UpsertEmployeeRequest,
    actor: PolicyManagerDep,
) -> EmployeeResponse:
    """Create or update an employee in the directory stub."""
    directory = get_employee_directory()
    employee = EmployeeInfo(id=employee_id, **payload.model_dump())
    directory.seed(employee)  # ty: ignore[unresolved-attribute]
    return _build_employee_response(employee)


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str, actor: ActorDep) -> EmployeeResponse:
    """Get employee info from the directory."""
    employee = await get_employee_directory().get_employee(employee_id)
    if employee is None:
        raise NotFound(f"Employee {employee_id} not found")
    return _build_employee_response(employee)


@employees_router.get("", response_model=EmployeeListResponse)
async def list_employees(actor: ActorDep) -> EmployeeListResponse:
    """List all employees in the directory."""
    employees = await get_employee_directory().list_employees()
    items = [_build_employee_response(e) for e in employees]
    return EmployeeListResponse(items=items, total=len(items))
