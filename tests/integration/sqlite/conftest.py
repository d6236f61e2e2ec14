"""
Fixtures for SQLite-specific integration tests.
"""
import pytest
from tests.fixtures.records import Point


@pytest.fixture
def points(sqlite_conn):
    """Insert three points and return the connection."""
    insert = sqlite_conn.statement('INSERT INTO point (x, y) VALUES (?, ?)', Point)
    for x, y in [(1, 10), (2, 20), (3, 30)]:
        insert.execute(Point(x=x, y=y))
    return sqlite_conn
