"""
Read-only queries over an employee snapshot.

Pure functions: they never mutate the snapshot and never touch the network.
"""

from dataclasses import dataclass
from typing import Sequence

from employee_facade.models import Employee

TOP_EARNERS_LIMIT = 10


@dataclass(frozen=True)
class Found:
    employee: Employee


@dataclass(frozen=True)
class Missing:
    id: str


Lookup = Found | Missing


def by_id(snapshot: Sequence[Employee], employee_id: str) -> Lookup:
    """First employee whose id equals ``employee_id`` exactly."""
    for employee in snapshot:
        if employee.id == employee_id:
            return Found(employee)
    return Missing(employee_id)


def search_by_name(snapshot: Sequence[Employee], query: str) -> list[Employee]:
    """Employees whose name contains ``query``, ignoring case, in snapshot order."""
    needle = query.lower()
    return [employee for employee in snapshot if needle in employee.name.lower()]


def highest_salary(snapshot: Sequence[Employee]) -> int | None:
    if not snapshot:
        return None
    return max(employee.salary for employee in snapshot)


def top_earner_names(
    snapshot: Sequence[Employee], limit: int = TOP_EARNERS_LIMIT
) -> list[str]:
    """Names of the best paid employees, salary descending.

    ``sorted`` is stable, so equal salaries keep their snapshot order.
    """
    ranked = sorted(snapshot, key=lambda employee: employee.salary, reverse=True)
    return [employee.name for employee in ranked[:limit]]
