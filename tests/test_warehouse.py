# -*- coding: utf-8 -*-

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from cassandra import InvalidRequest

from tugboat.bay.manifest import ExecutionIdentity
from tugboat.bay.warehouse import CassWarehouse
from tugboat.common.errors import TugStorageError


IDENTITY = ExecutionIdentity(namespace='default', name='job-7-attempt-0')


def row(marker, content=None):
    
    return SimpleNamespace(marker=marker, content=content)


@pytest.fixture
def session():
    
    return MagicMock()


@pytest.fixture
def store(session):
    
    return CassWarehouse(session=session)


def test_get_missing_marker(store, session):
    
    session.execute.return_value = []
    
    assert store.get(IDENTITY, 'SUCCEEDED') is None
    
    stmt, params = session.execute.call_args[0]
    assert 'tugboat.status_record' in stmt
    assert params == ['default', 'job-7-attempt-0', 'SUCCEEDED']


def test_get_content(store, session):
    
    session.execute.return_value = [row('SUCCEEDED', b'{"rows":42}')]
    
    assert store.get(IDENTITY, 'SUCCEEDED') == b'{"rows":42}'


def test_markers(store, session):
    
    session.execute.return_value = [row('INITIALIZING'), row('RUNNING')]
    
    assert store.markers(IDENTITY) == ['INITIALIZING', 'RUNNING']
    assert session.execute.call_args[0][1] == ['default', 'job-7-attempt-0']


def test_put(store, session):
    
    store.put(IDENTITY, 'SUCCEEDED', b'payload')
    
    stmt, params = session.execute.call_args[0]
    assert stmt.strip().startswith('INSERT INTO tugboat.status_record')
    assert params[:3] == ['default', 'job-7-attempt-0', 'SUCCEEDED']
    assert bytes(params[3]) == b'payload'


def test_missing_table_is_created(store, session):
    
    session.execute.side_effect = [InvalidRequest('unconfigured table'), None, None]
    
    store.put(IDENTITY, 'RUNNING')
    
    statements = [c[0][0] for c in session.execute.call_args_list]
    assert len(statements) == 3
    assert 'CREATE TABLE IF NOT EXISTS tugboat.status_record' in statements[1]
    assert 'INSERT INTO' in statements[2]


def test_read_failure(store, session):
    
    session.execute.side_effect = RuntimeError("connection reset")
    
    with pytest.raises(TugStorageError):
        store.markers(IDENTITY)


def test_delete(store, session):
    
    store.delete(IDENTITY)
    
    stmt, params = session.execute.call_args[0]
    assert 'DELETE FROM tugboat.status_record' in stmt
    assert params == ['default', 'job-7-attempt-0']
