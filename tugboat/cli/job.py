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

import click
import os
import signal
import threading

from tugboat.api.launcher import JobLauncher
from tugboat.bay.manifest import JobRunConfig, LaunchSpec, Outcome
from tugboat.cli.handler import CMD
from tugboat.common.constants import ExitCode
from tugboat.common.logging import LOG, LoggerHub
from tugboat.common.parser import from_json, parse_pairs


def read_files(refs) -> dict:
    
    files = {}
    
    for name, path in parse_pairs(refs).items():
        with open(os.path.expanduser(path), 'rb') as f:
            files[name] = f.read()
    
    return files


def cancel_on_sigterm(launcher: JobLauncher):
    
    def handler(*_):
        LOG.warn("Received SIGTERM. Cancelling launch")
        threading.Thread(target=launcher.cancel, name='tugboat-cancel', daemon=True).start()
    
    signal.signal(signal.SIGTERM, handler)


def outcome_exit_code(outcome: Outcome):
    
    return ExitCode.SUCCESS if outcome.succeeded else ExitCode.FAILURE


def _launch(logical_key: str, application_name: str, job_id: str, attempt_id: int = 0, inpt: str = None,
            files: tuple = (), env_vars: tuple = (), labels: tuple = (), image: str = None,
            resource_profile: str = None):
    
    launcher = JobLauncher(log=LoggerHub.get_logger(logical_key))
    cancel_on_sigterm(launcher)
    job_run_config = JobRunConfig(job_id=job_id, attempt_id=attempt_id)
    
    if resource_profile is None:
        resources = None
    else:
        resources = launcher.captain.compass.get_resource_profile(resource_profile)
    
    spec = LaunchSpec.for_application(
        application_name,
        job_run_config,
        inpt=None if inpt is None else from_json(inpt),
        additional_files=read_files(files),
        transferred_env=launcher.compass.transferable_env(),
        env_vars=parse_pairs(env_vars),
        labels=parse_pairs(labels),
        resource_requirements=resources,
        image=image
    )
    
    return launcher.launch(logical_key, spec, job_run_config)


@click.command()
@click.argument('logical_key')
@click.option('--app', '-a', 'application_name', required=True, help="Name of the application to be launched")
@click.option('--job-id', '-j', required=True, help="Job identifier")
@click.option('--attempt-id', '-t', default=0, type=int, help="Attempt number within the job (default: 0)")
@click.option('--input', '-i', 'inpt', help="Job input as a JSON string")
@click.option('--file', '-f', 'files', multiple=True, help="Additional init file, in the syntax name=path")
@click.option('--env', '-e', 'env_vars', multiple=True, help="Environment variable, in the syntax KEY=VALUE")
@click.option('--label', 'labels', multiple=True, help="Extra label for the unit, in the syntax key=value")
@click.option('--image', help="Container image (default: configured image)")
@click.option('--resource-profile', '-r', help="Name of a resource profile from the configuration")
def launch(**kwargs):
    
    """Launch a job, killing anything else running under the same key"""
    
    CMD.run(_launch, _exit_code=outcome_exit_code, **kwargs)


@click.command()
@click.option('--job-id', '-j', required=True, help="Job identifier")
@click.option('--attempt-id', '-t', default=0, type=int, help="Attempt number within the job (default: 0)")
def status(job_id: str, attempt_id: int):
    
    """Status of a job attempt, as published by its unit"""
    
    CMD.run(lambda: JobLauncher().inspect(JobRunConfig(job_id=job_id, attempt_id=attempt_id)))


@click.command()
@click.argument('logical_key')
def reap(logical_key: str):
    
    """Delete every running unit under a key"""
    
    CMD.run(lambda: JobLauncher().reap(logical_key))
