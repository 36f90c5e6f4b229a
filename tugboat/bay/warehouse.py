# -*- coding: utf-8 -*-

# Copyright Tugboat Development Team
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Module for handling status records in a persistent store

Each execution identity owns one record, made of one row per status marker it has reached.
The row of the SUCCEEDED marker holds the output payload, verbatim.
"""

from abc import ABC, abstractmethod
from cassandra import InvalidRequest
from cassandra.cluster import Cluster
from cassandra.policies import RoundRobinPolicy
from typing import Type, List

from tugboat.bay.compass import StoreCompass, CassStoreCompass
from tugboat.bay.manifest import ExecutionIdentity
from tugboat.common.annotations import Configured
from tugboat.common.conf import StoreConf
from tugboat.common.constants import Flag, StoreConst
from tugboat.common.errors import ResolutionError, TugStorageError
from tugboat.common.logging import Logged


class Warehouse(ABC, Configured, Logged):
    
    conf = StoreConf
    compass_cls: Type[StoreCompass] = StoreCompass
    
    def __init__(self, log=None, **kwargs):
        
        Logged.__init__(self, log=log)
        self.client = None
        self.compass = self.compass_cls(custom_conf=kwargs)
    
    @abstractmethod
    def connect(self):
        
        pass
    
    @abstractmethod
    def get(self, identity: ExecutionIdentity, marker: str):
        
        """Content stored under the marker, or None if the marker was never written"""
    
    @abstractmethod
    def put(self, identity: ExecutionIdentity, marker: str, content: bytes = b''):
        
        pass
    
    @abstractmethod
    def markers(self, identity: ExecutionIdentity) -> List[str]:
        
        pass
    
    @abstractmethod
    def delete(self, identity: ExecutionIdentity):
        
        pass


def keysp_dependent(func):
    
    setattr(func, Flag.KEYSP_DEP, True)
    return func


def table_dependent(func):
    
    setattr(func, Flag.TABLE_DEP, True)
    return func


class CassWarehouse(Warehouse):
    
    compass_cls = CassStoreCompass
    
    NO_KEYSP_EXC = InvalidRequest
    NO_TABLE_EXC = InvalidRequest
    
    TABLE_NAME = StoreConst.TABLE_NAME
    
    def __init__(self, session=None, **kwargs):
        
        super().__init__(**kwargs)
        self.compass: CassStoreCompass = self.compass
        
        if session is None:
            self.connect()
        else:
            self.client = session
    
    @property
    def keyspace(self):
        
        return self.compass.keyspace
    
    def _keysp_depending_wrapper(self, func):
        
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except self.NO_KEYSP_EXC:
                self.create_keyspace()
            return func(*args, **kwargs)
        
        return wrapper
    
    def _table_depending_wrapper(self, func):
        
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except self.NO_TABLE_EXC:
                self.create_table()
            return func(*args, **kwargs)
        
        return wrapper
    
    def __getattribute__(self, attr_name):
        
        attr = super().__getattribute__(attr_name)
        
        if getattr(attr, Flag.KEYSP_DEP, False):
            return self._keysp_depending_wrapper(attr)
        elif getattr(attr, Flag.TABLE_DEP, False):
            return self._table_depending_wrapper(attr)
        else:
            return attr
    
    def connect(self):
        
        self.client = Cluster(
            contact_points=self.compass.hosts,
            port=self.compass.port,
            protocol_version=4,
            load_balancing_policy=RoundRobinPolicy()
        ).connect()
        
        self.set_keyspace()
    
    @keysp_dependent
    def set_keyspace(self):
        
        self.client.set_keyspace(self.keyspace)
    
    def create_keyspace(self):
        
        stmt = """
            CREATE KEYSPACE IF NOT EXISTS {keysp}
            WITH REPLICATION = {{
                'class': 'SimpleStrategy',
                'replication_factor': '{repl}'
            }}
        """.format(
            keysp=self.keyspace,
            repl=self.compass.replication
        )
        
        self.LOG.info("Creating keyspace '{}'".format(self.keyspace))
        self.client.execute(stmt)
    
    def create_table(self):
        
        stmt = """
            CREATE TABLE IF NOT EXISTS {keysp}.{table} (
                id_namespace VARCHAR,
                id_name VARCHAR,
                marker VARCHAR,
                content BLOB,
                PRIMARY KEY((id_namespace, id_name), marker)
            )
        """.format(
            keysp=self.keyspace,
            table=self.TABLE_NAME
        )
        
        self.LOG.info("Creating table '{}.{}'".format(self.keyspace, self.TABLE_NAME))
        self.client.execute(stmt)
    
    def _rows(self, identity: ExecutionIdentity, marker: str = None):
        
        stmt = """
            SELECT marker, content FROM {keysp}.{table}
            WHERE id_namespace=%s AND id_name=%s
        """.format(
            keysp=self.keyspace,
            table=self.TABLE_NAME
        )
        
        params = [identity.namespace, identity.name]
        
        if marker is not None:
            stmt += " AND marker=%s"
            params.append(marker)
        
        try:
            return list(self.client.execute(stmt, params))
        except self.NO_TABLE_EXC:
            raise
        except Exception as e:
            raise TugStorageError("Could not read status record '{}'".format(identity.show())) from e
    
    @table_dependent
    def get(self, identity: ExecutionIdentity, marker: str):
        
        rows = self._rows(identity, marker)
        
        if len(rows) == 0:
            return None
        else:
            return bytes(rows[0].content or b'')
    
    @table_dependent
    def markers(self, identity: ExecutionIdentity):
        
        return [row.marker for row in self._rows(identity)]
    
    @table_dependent
    def put(self, identity: ExecutionIdentity, marker: str, content: bytes = b''):
        
        stmt = """
            INSERT INTO {keysp}.{table} (id_namespace, id_name, marker, content)
            VALUES (%s, %s, %s, %s)
        """.format(
            keysp=self.keyspace,
            table=self.TABLE_NAME
        )
        
        self.LOG.debug("Writing marker {} for '{}'".format(marker, identity.show()))
        self.client.execute(stmt, [identity.namespace, identity.name, marker, memoryview(content or b'')])
    
    @table_dependent
    def delete(self, identity: ExecutionIdentity):
        
        stmt = """
            DELETE FROM {keysp}.{table}
            WHERE id_namespace=%s AND id_name=%s
        """.format(
            keysp=self.keyspace,
            table=self.TABLE_NAME
        )
        
        self.client.execute(stmt, [identity.namespace, identity.name])


def get_warehouse(**kwargs) -> Warehouse:
    
    store_type = StoreCompass().tipe.strip().lower()
    cls_lookup = {
        StoreConst.Types.CASS: CassWarehouse
    }
    
    try:
        warehouse_cls = cls_lookup[store_type]
    except KeyError:
        raise ResolutionError(
            "Could not resolve status store by reference '{}'. Options are: {}"
            .format(store_type, list(cls_lookup.keys()))
        )
    else:
        return warehouse_cls(**kwargs)
