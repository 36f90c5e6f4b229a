# -*- coding: utf-8 -*-

import threading
import time
from collections import OrderedDict

import pytest

from tugboat.bay.captain import Captain
from tugboat.bay.compass import KubeCompass
from tugboat.bay.manifest import ExecutionIdentity
from tugboat.bay.warehouse import Warehouse
from tugboat.common.errors import TugStorageError


class FakeUnit(object):
    
    def __init__(self, name: str, labels: dict = None, phase: str = 'Running', countdown: int = None,
                 on_finish=None, stuck: bool = False, exit_code: int = None):
        
        self.name = name
        self.exit_code = exit_code
        self.labels = labels or {}
        self.phase = phase
        self.countdown = countdown  # number of lookups before the unit finishes by itself
        self.on_finish = on_finish
        self.stuck = stuck  # deletion requests are accepted but never complete


class FakeCaptain(Captain):
    
    compass_cls = KubeCompass
    
    TERMINAL = ('Succeeded', 'Failed')
    
    def __init__(self, **kwargs):
        
        super().__init__(**kwargs)
        self.units = OrderedDict()
        self.events = []
        self.create_error = None
        self.on_create = None
        self.lock = threading.RLock()
    
    @property
    def created(self):
        
        return [name for event, name in self.events if event == 'create']
    
    @property
    def deleted(self):
        
        return [name for event, name in self.events if event == 'delete']
    
    def add(self, name: str, labels: dict = None, **kwargs):
        
        unit = FakeUnit(name, labels, **kwargs)
        self.units[name] = unit
        return unit
    
    def list_non_terminal(self, label_key: str, label_value: str, spare: str = None):
        
        with self.lock:
            return [
                u for u in self.units.values()
                if u.labels.get(label_key) == label_value and not self.is_terminal(u) and u.name != spare
            ]
    
    def delete(self, unit):
        
        with self.lock:
            self.events.append(('delete', unit.name))
            
            if unit.name not in self.units:
                return False
            
            if not unit.stuck:
                del self.units[unit.name]
            
            return True
    
    def create(self, identity: ExecutionIdentity, spec, labels: dict):
        
        if self.create_error is not None:
            raise self.create_error
        
        with self.lock:
            if identity.name in self.units:
                return self.units[identity.name]
            
            self.events.append(('create', identity.name))
            unit = self.add(identity.name, labels)
        
        if self.on_create is not None:
            self.on_create(unit, spec)
        
        return unit
    
    def find(self, identity: ExecutionIdentity):
        
        with self.lock:
            unit = self.units.get(identity.name)
            
            if unit is not None and unit.countdown is not None and not self.is_terminal(unit):
                unit.countdown -= 1
                
                if unit.countdown <= 0:
                    unit.phase = 'Succeeded'
                    
                    if unit.on_finish is not None:
                        unit.on_finish(unit)
            
            return unit
    
    def is_terminal(self, unit) -> bool:
        
        return unit.phase in self.TERMINAL
    
    def exit_code_of(self, unit):
        
        return unit.exit_code
    
    def name_of(self, unit) -> str:
        
        return unit.name


class FakeWarehouse(Warehouse):
    
    def __init__(self, **kwargs):
        
        super().__init__(**kwargs)
        self.records = {}
        self.fail_reads = False
    
    def connect(self):
        
        pass
    
    def _record(self, identity: ExecutionIdentity):
        
        if self.fail_reads:
            raise TugStorageError("Status store is unreachable")
        
        return self.records.setdefault(tuple(identity), OrderedDict())
    
    def get(self, identity: ExecutionIdentity, marker: str):
        
        return self._record(identity).get(marker)
    
    def put(self, identity: ExecutionIdentity, marker: str, content: bytes = b''):
        
        self.records.setdefault(tuple(identity), OrderedDict())[marker] = bytes(content or b'')
    
    def markers(self, identity: ExecutionIdentity):
        
        return list(self._record(identity).keys())
    
    def delete(self, identity: ExecutionIdentity):
        
        self.records.pop(tuple(identity), None)


def wait_for(predicate, timeout: float = 5):
    
    started = time.monotonic()
    
    while not predicate():
        if time.monotonic() - started > timeout:
            raise AssertionError("Condition not met within {} seconds".format(timeout))
        
        time.sleep(0.005)


@pytest.fixture
def captain():
    
    return FakeCaptain()


@pytest.fixture
def warehouse():
    
    return FakeWarehouse()


@pytest.fixture
def identity():
    
    return ExecutionIdentity(namespace='default', name='job-7-attempt-0')
