"""
Unit tests for dialect strategies.
"""
import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlqueue import ConnectionOptions, FieldType
from sqlqueue.strategy import PostgresStrategy, SQLiteStrategy, get_available_dialects
from sqlqueue.strategy import get_strategy, get_strategy_class, is_supported_dialect


def test_registry():
    assert set(get_available_dialects()) == {'postgresql', 'sqlite'}
    assert is_supported_dialect('sqlite')
    assert not is_supported_dialect('mssql')
    assert get_strategy_class('sqlite') is SQLiteStrategy
    with pytest.raises(ValueError, match='Unsupported dialect'):
        get_strategy('oracle')


def test_strategy_instances_are_cached():
    assert get_strategy('postgresql') is get_strategy('postgresql')
    assert isinstance(get_strategy('postgresql'), PostgresStrategy)


def test_placeholder_style_drives_standardize_sql():
    class QmarkPostgres(PostgresStrategy):
        def get_placeholder_style(self):
            return '?'

    sql = "SELECT * FROM t WHERE name LIKE 'a%' AND id = %s"
    assert QmarkPostgres().standardize_sql(sql) == "SELECT * FROM t WHERE name LIKE 'a%' AND id = ?"
    assert PostgresStrategy().standardize_sql(sql) == "SELECT * FROM t WHERE name LIKE 'a%%' AND id = %s"


class TestSQLiteStrategy:

    @pytest.fixture
    def strategy(self):
        return SQLiteStrategy()

    def test_url(self, strategy):
        options = ConnectionOptions(drivername='sqlite', database='/tmp/app.db')
        assert strategy.build_connection_url(options) == 'sqlite:////tmp/app.db'

    def test_engine_kwargs_file(self, strategy):
        options = ConnectionOptions(drivername='sqlite', database='app.db')
        kwargs = strategy.get_engine_kwargs(options)
        assert kwargs == {'connect_args': {'check_same_thread': False}}

    def test_engine_kwargs_memory(self, strategy):
        options = ConnectionOptions(drivername='sqlite', database=':memory:')
        kwargs = strategy.get_engine_kwargs(options)
        assert kwargs['poolclass'] is StaticPool

    @pytest.mark.parametrize(('kind', 'value', 'expected'), [
        (FieldType.DATETIME, datetime.datetime(2024, 1, 2, 3, 4, 5), '2024-01-02 03:04:05'),
        (FieldType.DATETIME_N, datetime.datetime(2024, 1, 2, 3, 4, 5), '2024-01-02 03:04:05'),
        (FieldType.DATE, datetime.date(2024, 1, 2), '2024-01-02'),
        (FieldType.TIME, datetime.time(3, 4, 5), '03:04:05'),
        (FieldType.BIT, True, 1),
        (FieldType.TEXT, 'x', 'x'),
    ])
    def test_adapt_param(self, strategy, kind, value, expected):
        assert strategy.adapt_param(kind, value) == expected

    def test_placeholders(self, strategy):
        assert strategy.get_placeholder_style() == '?'
        assert strategy.standardize_sql('SELECT %s') == 'SELECT ?'

    def test_last_insert_id(self, strategy, mocker):
        cursor = mocker.Mock(lastrowid=17)
        assert strategy.last_insert_id(mocker.Mock(), cursor) == 17


class TestPostgresStrategy:

    @pytest.fixture
    def strategy(self):
        return PostgresStrategy()

    @pytest.fixture
    def options(self):
        return ConnectionOptions(hostname='db', username='u', password='p',
                                 database='test', port=5432, timeout=30, appname='app')

    def test_url(self, strategy, options):
        assert strategy.build_connection_url(options) == \
            'postgresql+psycopg://u:p@db:5432/test?connect_timeout=30&application_name=app'

    def test_passthrough(self, strategy):
        value = datetime.date(2024, 1, 2)
        assert strategy.adapt_param(FieldType.DATE, value) is value
        assert strategy.get_engine_kwargs(None) == {}
        assert strategy.standardize_sql('SELECT ?') == 'SELECT %s'

    def test_last_insert_id(self, strategy, mocker):
        raw_conn = mocker.Mock()
        lastval_cursor = raw_conn.cursor.return_value
        lastval_cursor.fetchone.return_value = (42,)
        assert strategy.last_insert_id(raw_conn, mocker.Mock()) == 42
        lastval_cursor.execute.assert_called_once_with('SELECT lastval()')
        lastval_cursor.close.assert_called_once()
        raw_conn.rollback.assert_called_once()

    def test_last_insert_id_undefined(self, strategy, mocker):
        import psycopg
        raw_conn = mocker.Mock()
        raw_conn.cursor.return_value.execute.side_effect = \
            psycopg.errors.ObjectNotInPrerequisiteState('lastval is not yet defined')
        assert strategy.last_insert_id(raw_conn, mocker.Mock()) is None
        raw_conn.rollback.assert_called_once()

    def test_required_options(self, strategy):
        with pytest.raises(ValueError, match='port'):
            ConnectionOptions(hostname='db', username='u', password='p',
                              database='test', timeout=30)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
