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

from tugboat.cli.job import launch, status, reap
from tugboat.common.constants import FrameworkConst
from tugboat.common.logging import LoggerHub, LOG


@click.group()
@click.option('--log-level', '-l', default='INFO', type=str, help="Level of log verbosity (DEBUG, INFO, WARN, ERROR)")
@click.option('--debug', '-d', default=False, type=bool, is_flag=True, help="Set log level to DEBUG")
@click.option('--pretty', '-p', default=False, type=bool, is_flag=True, help="Less compact, more readable output")
@click.option('--background', '-b', default=False, type=bool, is_flag=True, help="Run in background, only log to files")
@click.pass_context
def tug(_, log_level: str, debug: bool, pretty: bool, background: bool):
    
    """Command line interface for the Tugboat job launcher"""
    
    if debug:
        log_level = 'DEBUG'
    
    LoggerHub.configure(level=log_level, pretty=pretty, background=background)


@click.command()
def version():
    
    """Framework's version"""
    
    LOG.echo("Tugboat v%s" % FrameworkConst.FW_VERSION)


commands = [
    launch,
    status,
    reap,
    version
]

for cmd in commands:
    tug.add_command(cmd)
