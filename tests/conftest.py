"""Shared pytest fixtures for datasette-suggestions tests."""

import re
import sqlite3

import pytest
from datasette.app import Datasette

from datasette_suggestions.migrations import run_migrations

ALICE = {"id": "user:alice", "display": "Alice"}
BOB = {"id": "user:bob", "display": "Bob"}


@pytest.fixture
def db_path(tmp_path):
    """Create a temporary database with full schema via migrations.

    This is the canonical way to get a test database - uses the same
    migration system as production.
    """
    db_file = tmp_path / "test_suggestions.db"
    run_migrations(db_file, verbose=False)
    return db_file


@pytest.fixture
def datasette(db_path):
    """Create a Datasette instance with the plugin configured."""
    return Datasette(
        [str(db_path)],
        config={
            "plugins": {
                "datasette-suggestions": {
                    "suggestions_db_path": str(db_path),
                }
            },
        },
    )


@pytest.fixture
def seed(db_path):
    """Insert a suggestion row directly, with a fixed created_at."""

    def _seed(
        suggestion_id: str,
        owner_id: str = ALICE["id"],
        title: str = "Seeded Suggestion",
        status: str = "public",
        created_at: str = "2024-01-01T00:00:00+00:00",
        body: str = "",
    ) -> str:
        conn = sqlite3.connect(db_path)
        conn.execute(
            """
            INSERT INTO suggestions
                (suggestion_id, owner_id, owner_display, title, body, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (suggestion_id, owner_id, owner_id.split(":")[-1], title, body, status, created_at),
        )
        conn.commit()
        conn.close()
        return suggestion_id

    return _seed


@pytest.fixture
def fetch_row(db_path):
    """Read a suggestion row straight from the database."""

    def _fetch(suggestion_id: str) -> dict | None:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        try:
            row = conn.execute(
                "SELECT * FROM suggestions WHERE suggestion_id = ?", (suggestion_id,)
            ).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    return _fetch


@pytest.fixture
def alice_cookie(datasette):
    return datasette.sign({"a": ALICE}, "actor")


@pytest.fixture
def bob_cookie(datasette):
    return datasette.sign({"a": BOB}, "actor")


async def get_csrf_token_and_cookies(client, cookies):
    """Get CSRF token and cookies by loading the add form.

    Returns (token, combined_cookies) where combined_cookies includes both
    the original cookies and the ds_csrftoken cookie set by the response.
    """
    response = await client.get("/suggestions/add", cookies=cookies)
    match = re.search(r'name="csrftoken" value="([^"]+)"', response.text)
    token = match.group(1) if match else None

    combined_cookies = dict(cookies) if cookies else {}
    if "ds_csrftoken" in response.cookies:
        combined_cookies["ds_csrftoken"] = response.cookies["ds_csrftoken"]

    return token, combined_cookies


@pytest.fixture
def send_form(datasette):
    """Send a form with any HTTP method as the given actor cookie, with a valid CSRF token."""

    async def _send(method: str, path: str, data: dict, actor_cookie: str):
        token, cookies = await get_csrf_token_and_cookies(
            datasette.client, {"ds_actor": actor_cookie}
        )
        assert token is not None, "Failed to get CSRF token"
        return await datasette.client.request(
            method,
            path,
            data={**data, "csrftoken": token},
            cookies=cookies,
            follow_redirects=False,
        )

    return _send


@pytest.fixture
def post_form(send_form):
    """POST a form as the given actor cookie, with a valid CSRF token."""

    async def _post(path: str, data: dict, actor_cookie: str):
        return await send_form("POST", path, data, actor_cookie)

    return _post


@pytest.fixture
def cross_site_headers():
    """Headers a browser adds to a form submitted from another site."""
    return {
        "Origin": "https://evil.example",
        "Sec-Fetch-Site": "cross-site",
    }
