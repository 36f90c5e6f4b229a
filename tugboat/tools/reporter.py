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

"""Helpers for the process running inside an execution unit

The launcher never talks to the remote process directly. Instead, the process publishes its
progress as status markers under its own identity, which it learns from the environment:

    reporter = StatusReporter.from_env()
    files = reporter.load_init_files()
    
    with reporter.reporting():
        output = do_work(files)
        reporter.succeeded(output)
"""

import os
from contextlib import contextmanager

from tugboat.bay.manifest import ExecutionIdentity, ExecutionStatus
from tugboat.bay.warehouse import Warehouse, get_warehouse
from tugboat.common.constants import EnvVar, OnBoard
from tugboat.common.errors import ConfigurationError
from tugboat.common.logging import Logged
from tugboat.common.parser import to_bytes


class StatusReporter(Logged):
    
    def __init__(self, identity: ExecutionIdentity, warehouse: Warehouse = None, init_dir: str = OnBoard.INIT_DIR,
                 log=None):
        
        Logged.__init__(self, log=log)
        self.identity = identity
        self.warehouse = warehouse or get_warehouse(log=self.LOG)
        self.init_dir = init_dir
        self.done = False
    
    @classmethod
    def from_env(cls, environ: dict = None, **kwargs):
        
        environ = os.environ if environ is None else environ
        namespace, name = environ.get(EnvVar.NAMESPACE), environ.get(EnvVar.POD_NAME)
        
        if not namespace or not name:
            raise ConfigurationError(
                "Environment variables {} and {} are required for reporting status"
                .format(EnvVar.NAMESPACE, EnvVar.POD_NAME)
            )
        
        return cls(ExecutionIdentity(namespace=namespace, name=name), **kwargs)
    
    def _mark(self, marker: str, content: bytes = b''):
        
        self.LOG.info("Marking '{}' as {}".format(self.identity.show(), marker))
        self.warehouse.put(self.identity, marker, content)
    
    def initializing(self):
        
        self._mark(ExecutionStatus.INITIALIZING)
    
    def running(self):
        
        self._mark(ExecutionStatus.RUNNING)
    
    def succeeded(self, output):
        
        self._mark(ExecutionStatus.SUCCEEDED, to_bytes(output))
        self.done = True
    
    def failed(self, reason: str = None):
        
        self._mark(ExecutionStatus.FAILED, to_bytes(reason or ''))
        self.done = True
    
    @contextmanager
    def reporting(self):
        
        """Marks the execution as running, and as failed if the block raises"""
        
        self.running()
        
        try:
            yield self
        except Exception as e:
            self.LOG.error("Execution '{}' failed".format(self.identity.name))
            self.LOG.error(e)
            self.failed(repr(e))
            raise
        
        if not self.done:
            self.LOG.warn("Execution '{}' finished without publishing an output".format(self.identity.name))
    
    def load_init_files(self) -> dict:
        
        if not os.path.isdir(self.init_dir):
            self.LOG.warn("No init files found at {}".format(self.init_dir))
            return {}
        
        files = {}
        
        for file_name in sorted(os.listdir(self.init_dir)):
            path = os.path.join(self.init_dir, file_name)
            
            if os.path.isfile(path):
                with open(path, 'rb') as f:
                    files[file_name] = f.read()
        
        return files
