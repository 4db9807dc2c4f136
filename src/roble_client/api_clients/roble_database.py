"""Single entry point combining auth and data operations."""

from .auth_client import AuthAPIClient
from .database_client import DatabaseAPIClient


class RobleDatabase(AuthAPIClient, DatabaseAPIClient):
    """Auth and data operations sharing one session and one token state.

    Example:
        async with RobleDatabase(config) as db:
            await db.login("ana@example.com", "secret")
            rows = await db.read("tasks", filters={"done": False})
    """
