"""
HTTP fixtures.

Requests go through the real application (routers, middleware, exception
handlers) with the session dependency bound to the test database. The
lifespan is not run, so no scheduler or file watcher is started.
"""

from typing import Dict

import httpx
import pytest

from src.infrastructure.database import build_session_maker, get_session
from src.main import app
from src.shared.domain import Actor
from src.shared.infrastructure.notifications import get_event_publisher


def auth(actor: Actor) -> Dict[str, str]:
    return {"X-User-Id": actor.id, "X-User-Role": actor.role.value}


@pytest.fixture
async def client(engine, publisher):
    session_maker = build_session_maker(engine)

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def new_ticket():
    return {
        "title": "Laptop will not boot",
        "description": "Black screen after the BIOS logo.",
        "category": "HARDWARE",
    }
