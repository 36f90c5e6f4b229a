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

"""Coordinates one execution per (job, attempt), killing whatever else runs under the same logical key

A launch may be retried or re-entered after the caller restarts: the status store tells whether the
unit of this attempt was already created, in which case the launcher attaches to it instead of
creating it again.
"""

import threading

from tugboat.api.main import Worker
from tugboat.bay.captain import Captain, get_captain
from tugboat.bay.compass import LauncherCompass
from tugboat.bay.manifest import ExecutionIdentity, ExecutionStatus, JobRunConfig, LaunchSpec, Outcome
from tugboat.bay.reaper import Reaper
from tugboat.bay.vessel import RemoteProcess
from tugboat.bay.warehouse import Warehouse, get_warehouse
from tugboat.common.annotations import Configured, validate, validation
from tugboat.common.conf import LauncherConf
from tugboat.common.constants import LabelConst, ExitCode, ExitCause
from tugboat.common.errors import CreationError, LaunchError
from tugboat.common.heartbeat import Heartbeat
from tugboat.common.logging import Logged
from tugboat.common.parser import merge_dicts, from_json


@validation
def non_empty_str(x):
    
    assert isinstance(x, str) and len(x.strip()) > 0, "Expected a non empty str"
    return True


class JobLauncher(Worker, Configured, Logged):
    
    conf = LauncherConf
    
    def __init__(self, captain: Captain = None, warehouse: Warehouse = None, output_decoder=None,
                 heartbeat=None, log=None, **kwargs):
        
        Logged.__init__(self, log=log)
        self.compass = LauncherCompass(custom_conf=kwargs)
        self.captain = captain or get_captain(log=self.LOG)
        self.warehouse = warehouse or get_warehouse(log=self.LOG)
        self.reaper = Reaper(
            self.captain,
            label_key=self.compass.label_key,
            timeout=self.compass.reap_timeout,
            backoff=self.compass.reap_backoff,
            log=self.LOG
        )
        self.output_decoder = output_decoder or from_json
        self.heartbeat = heartbeat
        self.logical_key = None
        self._process = None
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
    
    @property
    def process(self) -> RemoteProcess:
        
        with self._lock:
            return self._process
    
    @property
    def cancelled(self) -> bool:
        
        return self._cancelled.is_set()
    
    def _publish(self, logical_key: str, process: RemoteProcess):
        
        # a later launch on the same launcher replaces the handle of the previous one
        with self._lock:
            self.logical_key = logical_key
            self._process = process
    
    def make_identity(self, job_run_config: JobRunConfig) -> ExecutionIdentity:
        
        return ExecutionIdentity.derive(
            namespace=self.captain.namespace,
            prefix=self.compass.pod_name_prefix,
            job_run_config=job_run_config
        )
    
    def make_labels(self, logical_key: str, spec: LaunchSpec, job_run_config: JobRunConfig):
        
        return merge_dicts(spec.labels, {
            LabelConst.JOB_ID: str(job_run_config.job_id),
            LabelConst.ATTEMPT_ID: str(job_run_config.attempt_id),
            LabelConst.WORKER_POD_KEY: LabelConst.WORKER_POD_VALUE,
            self.compass.label_key: logical_key
        })
    
    def run(self, logical_key: str, launch_spec: LaunchSpec, job_run_config: JobRunConfig) -> Outcome:
        
        return self.launch(logical_key, launch_spec, job_run_config)
    
    @validate(logical_key=non_empty_str, launch_spec=LaunchSpec, job_run_config=JobRunConfig)
    def launch(self, logical_key: str, launch_spec: LaunchSpec, job_run_config: JobRunConfig) -> Outcome:
        
        app = launch_spec.application_name
        identity = self.make_identity(job_run_config)
        
        # no other live unit may share the logical key when this attempt's unit is created
        self.forget(self.reaper.reap_all(logical_key, spare=identity.name))
        
        try:
            process = RemoteProcess(
                identity,
                captain=self.captain,
                warehouse=self.warehouse,
                poll_interval=self.compass.poll_interval,
                log=self.LOG
            )
            self._publish(logical_key, process)
            
            if self.cancelled:
                self.LOG.info("Launcher {} was cancelled before starting".format(app))
                return Outcome.cancellation(app)
            
            status = process.status()
            
            if status == ExecutionStatus.NOT_STARTED:
                self.LOG.info("Creating unit '{}' for {}".format(identity.show(), app))
                process.create(launch_spec, labels=self.make_labels(logical_key, launch_spec, job_run_config))
            else:
                self.LOG.info("Resuming unit '{}' with status {}".format(identity.show(), status))
            
            with Heartbeat(self.heartbeat, interval=self.compass.heartbeat_interval, log=self.LOG):
                process.wait_until_terminal(should_stop=self._cancelled.is_set)
            
            if self.cancelled:
                return self._on_cancel(app, process)
            
            return self.interpret(app, process)
        
        except CreationError:
            raise
        except Exception as e:
            if self.cancelled:
                return self._on_cancel(app, self.process)
            
            raise LaunchError(app) from e
    
    def forget(self, names: list):
        
        """Drops the status records of reaped units, which no launch will resume"""
        
        for name in names:
            stale = ExecutionIdentity(namespace=self.captain.namespace, name=name)
            
            try:
                self.warehouse.delete(stale)
            except Exception as e:
                self.LOG.warn("Could not delete the status record of '{}': {}".format(stale.show(), e))
        
        return names
    
    def _on_cancel(self, app: str, process: RemoteProcess = None):
        
        self.LOG.info("Destroying process due to cancellation")
        
        if process is not None:
            process.destroy()
        
        return Outcome.cancellation(app)
    
    def interpret(self, app: str, process: RemoteProcess) -> Outcome:
        
        exit_code = process.exit_code()
        
        if exit_code != ExitCode.SUCCESS:
            return Outcome.failure(app, exit_code=exit_code, cause=process.exit_cause)
        
        output = process.output()
        
        if output is None:
            self.LOG.error("Running the {} launcher resulted in no readable output".format(app))
            return Outcome.failure(app, exit_code=exit_code, cause=ExitCause.NO_OUTPUT)
        
        return Outcome.success(app, output=output, payload=self.output_decoder(output))
    
    def cancel(self):
        
        self._cancelled.set()
        process = self.process
        
        if process is None:
            self.LOG.debug("Nothing was started, so there is nothing to cancel")
            return False
        
        self.LOG.debug("Closing process '{}'".format(process.name))
        
        for _ in range(self.compass.cancel_attempts):
            self.reaper.reap_all(self.logical_key)
            
            if process.has_exited():
                self.LOG.info("Successfully cancelled process '{}'".format(process.name))
                return True
        
        self.LOG.error("Unable to cancel process '{}'".format(process.name))
        return False
    
    def inspect(self, job_run_config: JobRunConfig):
        
        identity = self.make_identity(job_run_config)
        markers = self.warehouse.markers(identity)
        
        return dict(
            unit=identity.show(),
            status=ExecutionStatus.resolve(markers),
            markers=sorted(markers)
        )
    
    def reap(self, logical_key: str):
        
        return dict(
            logical_key=logical_key,
            reaped=self.forget(self.reaper.reap_all(logical_key))
        )
