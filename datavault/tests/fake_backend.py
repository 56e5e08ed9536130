"""
In-memory stand-in for the Data Vault REST backend.

Tests mount `FakeVault.app()` through `httpx.ASGITransport` so the real
RemoteClient talks HTTP+JSON to it. Every request is recorded in `calls`;
`overrides` forces a status/body for one "METHOD /path" key.
"""
from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport


class _Reply(Exception):
    def __init__(self, status: int, body: Any):
        self.status = status
        self.body = body


@dataclass
class Call:
    method: str
    path: str
    query: Dict[str, str]
    body: Any
    token: Optional[str]


@dataclass
class FakeVault:
    users: List[Dict[str, Any]] = field(default_factory=list)
    logs: List[Dict[str, Any]] = field(default_factory=list)
    verification: Dict[str, Any] = field(default_factory=dict)
    teaching: List[Any] = field(default_factory=list)
    rosters: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    results: Dict[str, Any] = field(default_factory=dict)
    available: List[Any] = field(default_factory=list)
    children: Any = None
    accounts: Dict[str, Dict[str, str]] = field(default_factory=dict)
    qr_codes: Dict[str, Dict[str, str]] = field(default_factory=dict)
    tokens: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    calls: List[Call] = field(default_factory=list)
    overrides: Dict[str, Tuple[int, Any]] = field(default_factory=dict)

    @classmethod
    def seeded(cls) -> "FakeVault":
        return cls(
            users=[
                {"userId": "A1", "fullName": "Ada Admin", "email": "ada@example.com", "role": "Admin"},
                {
                    "userId": "T1",
                    "fullName": "Tom Teacher",
                    "email": "tom@example.com",
                    "role": "Teacher",
                    "coursesTeaching": ["CS101", "MA201"],
                },
                {
                    "userId": "S1",
                    "fullName": "Sara Student",
                    "email": {"iv": "00ff", "content": "a1b2c3"},
                    "role": "Student",
                    "class": "10A",
                },
                {
                    "userId": "P1",
                    "fullName": "Pia Parent",
                    "email": "pia@example.com",
                    "decryptedEmail": "pia@example.com",
                    "role": "Parent",
                    "linkedStudentId": "S1",
                },
            ],
            logs=[
                {"_id": "L3", "timestamp": "2024-03-03T10:00:00Z", "userId": "S1", "role": "Student", "action": "LOGIN"},
                {"_id": "L2", "timestamp": "2024-03-02T10:00:00Z", "userId": "T1", "role": "Teacher", "action": "UPDATE_GRADE"},
                {"_id": "L1", "timestamp": "2024-03-01T10:00:00Z", "userId": "A1", "role": "Admin", "action": "LOGIN"},
            ],
            verification={
                "totalLogs": 3,
                "validLogs": 2,
                "invalidLogs": 1,
                "results": [
                    {"id": "L1", "userId": "A1", "action": "LOGIN", "isValid": True, "storedHash": "aa", "expectedHash": "aa"},
                    {"id": "L2", "userId": "T1", "action": "UPDATE_GRADE", "isValid": False, "storedHash": "bb", "expectedHash": "cc"},
                    {"id": "L3", "userId": "S1", "action": "LOGIN", "isValid": True, "storedHash": "dd", "expectedHash": "dd"},
                ],
            },
            teaching=[
                {"courseCode": "CS101", "courseName": "Intro to CS"},
                {"courseCode": "MA201", "courseName": "Linear Algebra"},
            ],
            rosters={
                "CS101": [
                    {"userId": "S1", "fullName": "Sara Student", "class": "10A", "grade": "B"},
                    {"userId": "S2", "name": "Sam Second"},
                ],
                "MA201": [{"userId": "S1", "fullName": "Sara Student", "class": "10A"}],
            },
            results={
                "studentName": "Sara Student",
                "studentId": "S1",
                "class": "10A",
                "courses": [
                    {"courseCode": "CS101", "courseName": "Intro to CS", "grade": "B", "teacherName": "Tom Teacher"},
                    {"courseCode": "MA201", "courseName": "Linear Algebra", "grade": None},
                ],
            },
            available=[
                {"courseCode": "CS101", "courseName": "Intro to CS"},
                {"courseCode": "MA201", "courseName": "Linear Algebra"},
                {"courseCode": "PH101", "courseName": "Physics"},
                {"courseCode": "CH101", "courseName": "Chemistry"},
            ],
            children={
                "userId": "S1",
                "fullName": "Sara Student",
                "class": "10A",
                "courses": [
                    {"courseCode": "CS101", "courseName": "Intro to CS", "grade": "B"},
                    {"courseCode": "MA201", "courseName": "Linear Algebra", "grade": "F"},
                    {"courseCode": "PH101", "courseName": "Physics"},
                ],
            },
            accounts={
                "ada@example.com": {"password": "secret", "token": "admin-token", "role": "Admin", "userId": "A1"},
                "tom@example.com": {"password": "secret", "token": "teacher-token", "role": "Teacher", "userId": "T1"},
            },
            qr_codes={"QR-S1": {"token": "student-token", "role": "Student", "userId": "S1"}},
            tokens={
                "admin-token": ("Admin", "A1"),
                "teacher-token": ("Teacher", "T1"),
                "student-token": ("Student", "S1"),
                "parent-token": ("Parent", "P1"),
            },
        )

    # ------------------------------------------------------------- helpers

    def transport(self) -> ASGITransport:
        return ASGITransport(app=self.app())

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c.path for c in self.calls if method is None or c.method == method]

    def calls_to(self, method: str, path: str) -> List[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def _user(self, user_id: str) -> Dict[str, Any]:
        for user in self.users:
            if user.get("userId") == user_id:
                return user
        raise _Reply(404, {"error": "User not found"})

    # ------------------------------------------------------------- app

    def app(self) -> FastAPI:
        vault = self

        async def record(request: Request) -> None:
            raw = await request.body()
            try:
                body = json.loads(raw) if raw else None
            except ValueError:
                body = raw.decode("utf-8", "replace")
            auth = request.headers.get("authorization") or ""
            token = auth[len("Bearer "):] if auth.startswith("Bearer ") else None
            path = request.url.path[len("/api"):] if request.url.path.startswith("/api") else request.url.path
            vault.calls.append(Call(request.method, path, dict(request.query_params), body, token))
            key = f"{request.method} {path}"
            if key in vault.overrides:
                status, payload = vault.overrides[key]
                raise _Reply(status, payload)

        async def principal(request: Request) -> Tuple[str, str]:
            auth = request.headers.get("authorization") or ""
            token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
            if token == "expired-token":
                raise _Reply(401, {"error": "jwt expired"})
            if token not in vault.tokens:
                raise _Reply(401, {"error": "Unauthorized - Invalid token"})
            return vault.tokens[token]

        app = FastAPI(dependencies=[Depends(record)])

        @app.exception_handler(_Reply)
        async def _reply(_request: Request, exc: _Reply) -> JSONResponse:
            return JSONResponse(status_code=exc.status, content=exc.body)

        api = APIRouter(prefix="/api")

        # ------------------------------------------------------------- auth

        @api.post("/auth/login")
        async def login(request: Request):
            data = await request.json()
            account = vault.accounts.get(data.get("email"))
            if account is None or account["password"] != data.get("password"):
                raise _Reply(401, {"error": "Invalid credentials"})
            return {k: account[k] for k in ("token", "role", "userId")}

        @api.post("/auth/qr")
        async def login_qr(request: Request):
            data = await request.json()
            account = vault.qr_codes.get(data.get("qr"))
            if account is None:
                raise _Reply(401, {"error": "Invalid QR code"})
            return dict(account)

        @api.post("/auth/register", status_code=201)
        async def register(request: Request, _who=Depends(principal)):
            data = await request.json()
            user = dict(data)
            user.pop("password", None)
            user["userId"] = f"U{len(vault.users) + 1}"
            vault.users.append(user)
            return {"message": "User registered successfully", "userId": user["userId"]}

        # ------------------------------------------------------------- users (static paths first)

        @api.get("/users")
        async def list_users(_who=Depends(principal)):
            return copy.deepcopy(vault.users)

        @api.get("/users/courses/available")
        async def available(_who=Depends(principal)):
            return copy.deepcopy(vault.available)

        @api.get("/users/courses/teaching")
        async def teaching(_who=Depends(principal)):
            return copy.deepcopy(vault.teaching)

        @api.get("/users/courses/{code}/students")
        async def roster(code: str, _who=Depends(principal)):
            return copy.deepcopy(vault.rosters.get(code, []))

        @api.get("/users/result/result")
        async def results(_who=Depends(principal)):
            return copy.deepcopy(vault.results)

        @api.get("/users/parent/student")
        async def child(_who=Depends(principal)):
            return copy.deepcopy(vault.children)

        @api.patch("/users/register-courses")
        async def register_courses(request: Request, _who=Depends(principal)):
            data = await request.json()
            for course in data.get("courses", []):
                vault.results.setdefault("courses", []).append(
                    {"courseCode": course.get("courseCode"), "courseName": course.get("courseName")}
                )
            return {"message": "Courses registered successfully"}

        @api.post("/users/delete")
        async def request_deletion(_who=Depends(principal)):
            return {"message": "Deletion request submitted"}

        @api.post("/users/generate-qr/{user_id}")
        async def generate_qr(user_id: str, _who=Depends(principal)):
            vault._user(user_id)
            return {"qrCode": f"data:image/png;base64,{user_id}"}

        @api.get("/users/id-card/{user_id}")
        async def id_card(user_id: str, _who=Depends(principal)):
            user = vault._user(user_id)
            return {"html": f"<div class='id-card'>{user['fullName']}</div>"}

        @api.get("/users/{user_id}")
        async def get_user(user_id: str, _who=Depends(principal)):
            return copy.deepcopy(vault._user(user_id))

        @api.put("/users/{user_id}")
        async def update_user(user_id: str, request: Request, _who=Depends(principal)):
            user = vault._user(user_id)
            data = await request.json()
            data.pop("password", None)
            user.update(data)
            return {"message": "User updated successfully"}

        @api.delete("/users/{user_id}")
        async def delete_user(user_id: str, _who=Depends(principal)):
            user = vault._user(user_id)
            vault.users.remove(user)
            return {"message": "User deleted"}

        @api.patch("/users/{user_id}/grades")
        async def update_grade(user_id: str, request: Request, _who=Depends(principal)):
            data = await request.json()
            for entry in vault.rosters.get(data.get("courseCode"), []):
                if entry.get("userId") == user_id:
                    entry["grade"] = data.get("grade")
                    return {"message": "Grade updated"}
            raise _Reply(404, {"error": "Student not enrolled"})

        # ------------------------------------------------------------- logs

        @api.get("/logs")
        async def logs(request: Request, _who=Depends(principal)):
            query = request.query_params
            out = vault.logs
            for key in ("userId", "role", "action"):
                if key in query:
                    out = [log for log in out if log.get(key) == query[key]]
            return copy.deepcopy(out)

        @api.get("/logs/verify")
        async def verify(_who=Depends(principal)):
            return copy.deepcopy(vault.verification)

        app.include_router(api)
        return app


__all__ = ["FakeVault", "Call"]
