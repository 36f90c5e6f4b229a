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

"""Facts about the environment this process runs in"""

import os
import socket

from tugboat.common.constants import EnvVar


def am_i_on_board(environ: dict = None) -> bool:
    
    """Whether this process runs inside a unit created by the launcher"""
    
    environ = os.environ if environ is None else environ
    return environ.get(EnvVar.ON_BOARD, '').strip().lower() in ('1', 'true', 'yes')


def unit_name(environ: dict = None) -> str:
    
    environ = os.environ if environ is None else environ
    return environ.get(EnvVar.POD_NAME) or socket.gethostname()
