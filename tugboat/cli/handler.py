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

import sys

from tugboat.common.constants import ExitCode
from tugboat.common.errors import describe
from tugboat.common.logging import LOG
from tugboat.common.parser import prune


class CommandHandler(object):
    
    """Runs the function behind a command, shows what it returns and exits with a matching code"""
    
    @classmethod
    def run(cls, _func, _exit_code=None, **func_kwargs):
        
        try:
            response = _func(**prune(func_kwargs, nones=(None,), depth=1))
        except Exception as e:
            LOG.error(describe(e))
            
            if LOG.debug_mode:
                raise
            
            sys.exit(ExitCode.FAILURE)
        
        if response is not None:
            LOG.echo(response)
        
        sys.exit(ExitCode.SUCCESS if _exit_code is None else _exit_code(response))


CMD = CommandHandler()
