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

"""Data types shared by the launcher, the remote process handle and the reaper"""

from collections import namedtuple

from tugboat.common.constants import Task, ExitCause, OrchestratorConst
from tugboat.common.parser import prune, to_json, to_bytes, to_str


class ExecutionStatus(object):
    
    """Status markers written to the status store, from the least to the most advanced"""
    
    NOT_STARTED = 'NOT_STARTED'
    INITIALIZING = 'INITIALIZING'
    RUNNING = 'RUNNING'
    SUCCEEDED = 'SUCCEEDED'
    FAILED = 'FAILED'
    
    ALL = [NOT_STARTED, INITIALIZING, RUNNING, SUCCEEDED, FAILED]
    MARKERS = [INITIALIZING, RUNNING, SUCCEEDED, FAILED]  # states that are persisted
    END_STATES = [SUCCEEDED, FAILED]
    
    @classmethod
    def resolve(cls, markers) -> str:
        
        """The most advanced status among the markers found, so that status never regresses"""
        
        markers = set(markers or [])
        
        for status in reversed(cls.MARKERS):
            if status in markers:
                return status
        else:
            return cls.NOT_STARTED
    
    @classmethod
    def is_terminal(cls, status: str):
        
        return status in cls.END_STATES


class JobRunConfig(namedtuple('JobRunConfig', ['job_id', 'attempt_id'])):
    
    __slots__ = ()
    
    def to_json(self):
        
        return to_json(dict(jobId=str(self.job_id), attemptId=int(self.attempt_id)))


class ExecutionIdentity(namedtuple('ExecutionIdentity', ['namespace', 'name'])):
    
    """Address of one execution unit and of its status record"""
    
    __slots__ = ()
    
    @classmethod
    def derive(cls, namespace: str, prefix: str, job_run_config: JobRunConfig):
        
        name = '-'.join(filter(None, [
            prefix,
            'job', str(job_run_config.job_id),
            'attempt', str(job_run_config.attempt_id)
        ]))
        
        return cls(namespace=namespace, name=name)
    
    def show(self):
        
        return '{}/{}'.format(self.namespace, self.name)


class LaunchSpec(object):
    
    """Everything needed to create an execution unit when no existing one is found"""
    
    def __init__(self, application_name: str, env_vars: dict = None, input_files: dict = None,
                 port_mappings: dict = None, resource_requirements: dict = None, labels: dict = None,
                 image: str = None):
        
        self.application_name = to_str(application_name, allow_empty=False)
        self.env_vars = dict(env_vars or {})
        self.input_files = dict([(k, to_bytes(v)) for k, v in (input_files or {}).items()])
        self.port_mappings = dict([(int(k), int(v)) for k, v in (port_mappings or {}).items()])
        self.resource_requirements = resource_requirements
        self.labels = dict(labels or {})
        self.image = image
    
    @classmethod
    def for_application(cls, application_name: str, job_run_config: JobRunConfig, inpt=None,
                        additional_files: dict = None, transferred_env: dict = None, **kwargs):
        
        """Assembles the standard init files and port map expected by the orchestrator image"""
        
        files = dict(additional_files or {})
        files.update({
            OrchestratorConst.INIT_FILE_APPLICATION: application_name,
            OrchestratorConst.INIT_FILE_JOB_RUN_CONFIG: job_run_config.to_json(),
            OrchestratorConst.INIT_FILE_INPUT: to_json(inpt),
            OrchestratorConst.INIT_FILE_ENV_MAP: to_json(transferred_env or {})
        })
        
        kwargs.setdefault('port_mappings', dict([(p, p) for p in OrchestratorConst.PORTS]))
        
        return cls(application_name, input_files=files, **kwargs)
    
    def pretty(self):
        
        return prune(dict(
            application=self.application_name,
            image=self.image,
            env_vars=self.env_vars,
            files=sorted(self.input_files.keys()),
            ports=self.port_mappings,
            resources=self.resource_requirements,
            labels=self.labels
        ))


class Outcome(object):
    
    """Result of a launch: remote failures and cancellations are data, not exceptions"""
    
    def __init__(self, state: str, application: str, exit_code: int = None, output: bytes = None,
                 payload=None, cause: str = None):
        
        assert state in Task.State.ALL
        self.state = state
        self.application = application
        self.exit_code = exit_code
        self.output = output
        self.payload = payload
        self.cause = cause
    
    @classmethod
    def success(cls, application: str, output: bytes, payload):
        
        return cls(Task.State.SUCCEEDED, application, exit_code=0, output=output, payload=payload)
    
    @classmethod
    def failure(cls, application: str, exit_code: int, cause: str = None):
        
        return cls(Task.State.FAILED, application, exit_code=exit_code, cause=cause)
    
    @classmethod
    def cancellation(cls, application: str, exit_code: int = None):
        
        return cls(Task.State.CANCELLED, application, exit_code=exit_code, cause=ExitCause.CANCELLED)
    
    @property
    def succeeded(self):
        
        return self.state == Task.State.SUCCEEDED
    
    @property
    def failed(self):
        
        return self.state == Task.State.FAILED
    
    @property
    def cancelled(self):
        
        return self.state == Task.State.CANCELLED
    
    def pretty(self):
        
        fields = dict(
            application=self.application,
            state=self.state,
            exit_code=self.exit_code,
            cause=self.cause,
            payload=self.payload
        )
        
        return prune(fields, nones=(None,), depth=1)
    
    def __repr__(self):
        
        return '{}({})'.format(self.__class__.__name__, self.pretty())
