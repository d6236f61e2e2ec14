"""
Queued statement execution on the worker pool against SQLite.
"""
import sqlite3

import sqlqueue
from sqlqueue import ExecutionError, IntegrityError, Nullable, Output, ResultContainer
from sqlqueue import SqlConnection
from sqlqueue.backend import dispose_all_engines
from tests.fixtures.mocks import MessageCollector
from tests.fixtures.records import Person, Point


def test_connect_from_config(sqlite_conn):
    assert isinstance(sqlite_conn, SqlConnection)
    assert sqlite_conn.dialect == 'sqlite'
    assert sqlite_conn.max_threads == 2
    assert sqlite_conn.threads == 0


def test_queued_inserts(sqlite_conn, collector):
    insert = sqlite_conn.statement('INSERT INTO point (x, y) VALUES (?, ?)', Point)
    with sqlite_conn:
        for x in range(20):
            insert.queue(Point(x=x, y=x * x), insert_id=Output(), rows=Output(), callback=collector)
        assert collector.wait_for(20)

    assert all(m.succeeded for m in collector.messages)
    assert sorted(m.query.insert_id.value for m in collector.messages) == list(range(1, 21))
    assert all(m.query.rows == 1 for m in collector.messages)

    rows = Output()
    sqlite_conn.statement('SELECT x, y FROM point').execute(results=ResultContainer(Point), rows=rows)
    assert rows == 20
    assert sqlite_conn.calls >= 21


def test_queued_select_hands_back_results(points, collector):
    select = points.statement('SELECT x, y FROM point ORDER BY x', result_type=Point)
    results = ResultContainer(Point)
    rows = Output()
    with points:
        select.queue(results=results, rows=rows, callback=collector)
        assert collector.wait_for(1)

    message = collector.messages[0]
    assert message.succeeded
    assert message.query.results is results
    assert [p.y for p in results] == [10, 20, 30]
    assert rows == 3


def test_unique_violation_message(sqlite_conn):
    collector = MessageCollector()
    insert = sqlite_conn.statement('INSERT INTO person (name, age) VALUES (?, ?)', Person)
    insert.execute(Person(name='ann', age=Nullable(30)))

    with sqlite_conn:
        insert.queue(Person(name='ann'), callback=collector)
        insert.queue(Person(name='bob'), callback=collector)
        assert collector.wait_for(2)

    by_name = {m.query.parameters.name: m for m in collector.messages}
    failed = by_name['ann']
    assert not failed.succeeded
    assert failed.type == sqlite_conn.message_type
    assert 'UNIQUE constraint failed' in failed.text
    assert isinstance(failed.error, ExecutionError)
    assert isinstance(failed.error.__cause__, sqlite3.IntegrityError)
    assert isinstance(failed.error.__cause__, IntegrityError)
    assert by_name['bob'].succeeded


def test_binding_error_becomes_message(sqlite_conn, collector):
    insert = sqlite_conn.statement('INSERT INTO person (name, age) VALUES (?, ?)', Person)
    with sqlite_conn:
        insert.queue(Person(name='old', age=Nullable(300)), callback=collector)
        assert collector.wait_for(1)
    message = collector.messages[0]
    assert not message.succeeded
    assert 'out of range' in message.text


def test_memory_database_with_many_workers(collector):
    """Workers sharing one in-memory connection keep every committed write"""
    cn = sqlqueue.connect({'drivername': 'sqlite', 'database': ':memory:', 'max_threads': 4})
    try:
        assert cn.shares_connection
        cn.statement('CREATE TABLE person (id INTEGER PRIMARY KEY AUTOINCREMENT, '
                     'name TEXT NOT NULL UNIQUE, age INTEGER)').execute()
        insert = cn.statement('INSERT INTO person (name, age) VALUES (?, ?)', Person)
        expected = 0
        with cn:
            for i in range(200):
                insert.queue(Person(name=f'p{i}'), insert_id=Output(), callback=collector)
                expected += 1
                if i % 3 == 0:
                    insert.queue(Person(name=f'p{i}'), insert_id=Output(), callback=collector)
                    expected += 1
            assert collector.wait_for(expected, timeout=30)

        succeeded = [m for m in collector.messages if m.succeeded]
        failed = [m for m in collector.messages if not m.succeeded]
        assert len(succeeded) == 200
        assert len(failed) == expected - 200
        assert all('UNIQUE constraint failed' in m.text for m in failed)
        assert len({m.query.insert_id.value for m in succeeded}) == 200

        results, rows = ResultContainer(Person), Output()
        cn.statement('SELECT name, age FROM person').execute(results=results, rows=rows)
        assert rows == len(succeeded)
        assert {p.name for p in results} == {f'p{i}' for i in range(200)}
    finally:
        cn.dispose()
        dispose_all_engines()


if __name__ == '__main__':
    __import__('pytest').main([__file__])
