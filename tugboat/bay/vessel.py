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

"""Client side handle of a process running remotely, inside an execution unit

The handle keeps no state that matters for resuming: a fresh handle bound to the same identity
sees exactly what the handle that created the unit would see, since every answer comes from the
status store or from the container manager.
"""

import time

from tugboat.bay.captain import Captain
from tugboat.bay.manifest import ExecutionIdentity, ExecutionStatus, LaunchSpec
from tugboat.bay.warehouse import Warehouse
from tugboat.common.constants import ExitCode, ExitCause
from tugboat.common.errors import MisusageError, CreationError
from tugboat.common.logging import Logged


class StillRunning(Exception):
    
    pass


class RemoteProcess(Logged):
    
    def __init__(self, identity: ExecutionIdentity, captain: Captain, warehouse: Warehouse,
                 poll_interval: float = 5, log=None):
        
        Logged.__init__(self, log=log)
        self.identity = identity
        self.captain = captain
        self.warehouse = warehouse
        self.poll_interval = poll_interval
        self.exit_cause = None
        self._exit_code = None
    
    @property
    def name(self):
        
        return self.identity.name
    
    def status(self) -> str:
        
        return ExecutionStatus.resolve(self.warehouse.markers(self.identity))
    
    def create(self, spec: LaunchSpec, labels: dict):
        
        status = self.status()
        
        if status != ExecutionStatus.NOT_STARTED:
            raise MisusageError("Cannot create '{}' with status {}".format(self.identity.show(), status))
        
        try:
            # a unit left by an earlier attempt is attached to, and its missing dependents are created
            self.captain.create(self.identity, spec, labels)
            
            self.warehouse.put(self.identity, ExecutionStatus.INITIALIZING)
        except Exception as e:
            raise CreationError(
                "Could not create the unit '{}' for {}".format(self.identity.show(), spec.application_name)
            ) from e
    
    def wait_until_terminal(self, should_stop=None) -> bool:
        
        """Blocks until the process exits. Returns False if 'should_stop' interrupted the wait"""
        
        while not self.has_exited():
            if should_stop is not None and should_stop():
                return False
            
            time.sleep(self.poll_interval)
        
        return True
    
    def exit_code(self) -> int:
        
        if self._exit_code is None:
            self._exit_code, self.exit_cause = self._compute_exit()
            self.LOG.info("Process '{}' exited with code {} ({})".format(self.name, self._exit_code, self.exit_cause))
        
        return self._exit_code
    
    def has_exited(self) -> bool:
        
        try:
            self.exit_code()
        except StillRunning:
            return False
        else:
            return True
    
    def _from_store(self):
        
        status = self.status()
        
        if status == ExecutionStatus.FAILED:
            return ExitCode.FAILURE, ExitCause.FAILED
        elif status == ExecutionStatus.SUCCEEDED:
            return ExitCode.SUCCESS, ExitCause.SUCCEEDED
        else:
            return None
    
    def _compute_exit(self):
        
        # the status store is the source of truth once it holds a terminal marker
        stored = self._from_store()
        
        if stored is not None:
            return stored
        
        unit = self.captain.find(self.identity)
        
        if unit is None:
            self.LOG.warn("Unit '{}' disappeared before reporting a terminal status".format(self.name))
            return ExitCode.FAILURE, ExitCause.DISAPPEARED
        
        if self.captain.is_terminal(unit):
            # the remote side may have written its status between both reads
            return self._from_store() or (self.captain.exit_code_of(unit) or ExitCode.FAILURE, ExitCause.NO_STATUS)
        
        raise StillRunning(self.name)
    
    def output(self):
        
        return self.warehouse.get(self.identity, ExecutionStatus.SUCCEEDED) or None
    
    def destroy(self):
        
        try:
            unit = self.captain.find(self.identity)
            
            if unit is not None:
                self.captain.delete(unit)
        except Exception as e:
            self.LOG.error("Failed to destroy unit '{}'".format(self.name))
            self.LOG.error(e)
            return False
        else:
            return True
