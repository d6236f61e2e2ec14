"""Unit tests for completion messages, outputs and work items.
"""
from unittest.mock import MagicMock

import pytest
from sqlqueue import EMPTY_CONTAINER, EMPTY_OUTPUT, EMPTY_SET, ExecutionError
from sqlqueue import Message, Output, Query
from tests.fixtures.records import Tag


class TestMessage:

    def test_success(self):
        msg = Message(7)
        assert msg.type == 7
        assert msg.size == 0
        assert msg.data == b''
        assert msg.succeeded
        assert msg.text == ''

    def test_failure_carries_text(self):
        err = ExecutionError('duplicate key value violates unique constraint')
        msg = Message.failure(3, err)
        assert msg.type == 3
        assert not msg.succeeded
        assert msg.error is err
        assert msg.text == 'duplicate key value violates unique constraint'
        assert msg.size == len(msg.data)

    def test_failure_utf8(self):
        msg = Message.failure(0, ExecutionError('clé dupliquée'))
        assert msg.data == 'clé dupliquée'.encode()
        assert msg.size == len('clé dupliquée'.encode())
        assert msg.text == 'clé dupliquée'

    def test_failure_without_text_names_the_error(self):
        msg = Message.failure(4, ExecutionError())
        assert not msg.succeeded
        assert msg.text == 'ExecutionError'
        assert msg.size > 0

    def test_query_not_in_repr(self):
        msg = Message(1, query=Query(MagicMock()))
        assert 'query' not in repr(msg)


class TestOutput:

    def test_empty(self):
        out = Output()
        assert out.value is None
        assert out == None  # noqa: E711
        with pytest.raises(ValueError):
            int(out)

    def test_written(self):
        out = Output()
        out.value = 12
        assert out == 12
        assert int(out) == 12
        assert out == Output(12)
        assert repr(out) == 'Output(12)'


def test_empty_placeholders():
    assert EMPTY_SET is None
    assert EMPTY_CONTAINER is None
    assert EMPTY_OUTPUT is None


def test_query_run_delegates_to_statement():
    statement = MagicMock()
    params = Tag(tag=1)
    rows = Output()
    query = Query(statement, params, None, None, rows)
    query.run()
    statement.execute.assert_called_once_with(params, None, None, rows)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
