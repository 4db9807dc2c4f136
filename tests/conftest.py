"""
Shared pytest fixtures for Roble client tests.

Provides a real in-memory Roble backend and clients wired to it.
"""

import socket
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from roble_client.api_clients import RobleDatabase
from tests.infrastructure.roble_test_server import (
    TEST_EMAIL,
    TEST_PASSWORD,
    RobleTestServer,
)


@pytest.fixture
def roble_server() -> RobleTestServer:
    """Fresh backend with one registered user."""
    server = RobleTestServer()
    server.add_user(TEST_EMAIL, TEST_PASSWORD, "Ana")
    return server


@pytest_asyncio.fixture
async def db(roble_server) -> AsyncGenerator[RobleDatabase, None]:
    """Client with no tokens, talking to ``roble_server``."""
    session = roble_server.create_session()
    client = RobleDatabase(roble_server.config(), session=session)
    try:
        yield client
    finally:
        await client.close()
        await session.aclose()


@pytest_asyncio.fixture
async def logged_in_db(roble_server, db) -> RobleDatabase:
    """Client holding a valid token pair."""
    access, refresh = roble_server.issue_tokens(TEST_EMAIL)
    db.set_tokens(access, refresh)
    return db


@pytest.fixture
def unused_local_url() -> str:
    """URL of a local port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"
