"""Test doubles: wire-format helpers and a scripted fake upstream directory."""

import json
import uuid
from collections import Counter, defaultdict, deque
from typing import Any

import httpx

from employee_facade.models import Employee

BASE_URL = "http://upstream.test/api/v1/employee"


def employee_json(
    id: Any,
    name: str,
    salary: int,
    age: int = 30,
    title: str = "Developer",
    email: str | None = None,
) -> dict[str, Any]:
    return {
        "id": id,
        "employee_name": name,
        "employee_salary": salary,
        "employee_age": age,
        "employee_title": title,
        "employee_email": email,
    }


def make_employee(id: str, name: str, salary: int, **kwargs: Any) -> Employee:
    return Employee.model_validate(employee_json(id, name, salary, **kwargs))


SEED = [
    employee_json("1", "John Doe", 50000),
    employee_json("2", "Jane Smith", 75000, age=35, title="Senior Developer"),
    employee_json("3", "Bob Johnson", 60000, age=28),
]


class FakeUpstream:
    """In-memory employee directory speaking the upstream envelope protocol."""

    def __init__(self, employees: list[dict[str, Any]] | None = None):
        self.employees = [dict(e) for e in (employees or [])]
        self.calls: Counter[str] = Counter()
        self.requests: list[httpx.Request] = []
        self._scripted: dict[str, deque] = defaultdict(deque)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def script(
        self,
        method: str,
        status: int,
        times: int = 1,
        body: Any = None,
        headers: dict[str, str] | None = None,
        exc: Exception | None = None,
    ) -> None:
        """Make the next ``times`` calls of ``method`` answer with a canned response."""
        for _ in range(times):
            self._scripted[method].append((status, body, headers, exc))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls[request.method] += 1
        self.requests.append(request)

        if self._scripted[request.method]:
            status, body, headers, exc = self._scripted[request.method].popleft()
            if exc is not None:
                raise exc
            return httpx.Response(
                status, json=body if body is not None else {}, headers=headers
            )

        if request.method == "GET":
            return self._ok(list(self.employees))

        payload = json.loads(request.content)
        if request.method == "POST":
            created = employee_json(
                str(uuid.uuid4()),
                payload["name"],
                payload["salary"],
                age=payload["age"],
                title=payload["title"],
                email=f"{payload['name'].lower().replace(' ', '.')}@company.com",
            )
            self.employees.append(created)
            return self._ok(created)

        if request.method == "DELETE":
            for index, employee in enumerate(self.employees):
                if employee["employee_name"] == payload["name"]:
                    del self.employees[index]
                    return self._ok(True)
            return self._ok(False)

        return httpx.Response(405, json={"status": "Method not allowed"})

    @staticmethod
    def _ok(data: Any) -> httpx.Response:
        return httpx.Response(
            200, json={"data": data, "status": "Successfully processed request."}
        )
