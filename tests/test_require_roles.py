from types import SimpleNamespace

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from underwriter.api import deps
from underwriter.core.errors import register_exception_handlers
from underwriter.core.permissions import UserRole
from underwriter.core.response_envelope import register_response_envelope


def _build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    register_response_envelope(app)

    @app.get("/protected")
    async def protected_route(user=Depends(deps.require_authenticated_user)):
        return {"user": user.id}

    @app.get("/officers-only")
    async def officers_only(user=Depends(deps.require_roles(UserRole.LOAN_OFFICER))):
        return {"role": user.role}

    return app


def _as_user(app: FastAPI, role: str) -> None:
    async def fake_user():
        return SimpleNamespace(id="user-1", role=role)

    app.dependency_overrides[deps.get_current_user] = fake_user


def test_protected_route_requires_auth():
    client = TestClient(_build_app())
    resp = client.get("/protected")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthorized"


def test_protected_route_allows_authenticated():
    app = _build_app()
    _as_user(app, "borrower")
    client = TestClient(app)
    resp = client.get("/protected")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"user": "user-1"}


def test_role_guard_rejects_other_roles():
    app = _build_app()
    _as_user(app, "admin")
    resp = TestClient(app).get("/officers-only")
    assert resp.status_code == 403
    assert resp.json()["message"] == "Requires one of roles: loan_officer"


def test_role_guard_allows_listed_role():
    app = _build_app()
    _as_user(app, "loan_officer")
    resp = TestClient(app).get("/officers-only")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"role": "loan_officer"}


def test_queue_dependency_requires_running_workers():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/queue")
    async def queue_route(queue=Depends(deps.get_pipeline_queue)):
        return {"workers": queue.worker_count}

    client = TestClient(app)
    assert client.get("/queue").status_code == 503

    app.state.pipeline_queue = SimpleNamespace(running=True, worker_count=2)
    assert client.get("/queue").json() == {"workers": 2}
