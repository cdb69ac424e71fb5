"""Pytest configuration for test isolation.

Each test that needs a ledger gets its own file-backed SQLite database under
``tmp_path``. Engines are cached per URL by ``db.client``; they are disposed
after every test so file handles never leak between tests. Environment
variables the package reads are cleared so a developer's ``.env`` or shell
cannot change test behavior.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest

from db import AccountKind
from db.client import dispose_engines, session_scope

from tests.helpers.db import add_account, bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "TM_MATCHING_CONFIG", "TRANSFER_MATCHING_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _dispose_engines():
    yield
    dispose_engines()


@dataclass
class Ledger:
    url: str
    checking: int
    savings: int
    uncategorized: int
    transfer_in: int
    groceries: int


@pytest.fixture()
def ledger_db(tmp_path: Path) -> Ledger:
    """Fresh ledger with two real accounts and a few category accounts."""

    url = bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")
    with session_scope(database_url=url) as session:
        ids = Ledger(
            url=url,
            checking=add_account(session, "Everyday Checking"),
            savings=add_account(session, "Online Saver"),
            uncategorized=add_account(session, "Uncategorized", AccountKind.CATEGORY),
            transfer_in=add_account(session, "Transfer In", AccountKind.CATEGORY),
            groceries=add_account(session, "Groceries", AccountKind.CATEGORY),
        )
    return ids
