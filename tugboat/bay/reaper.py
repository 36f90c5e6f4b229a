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

"""Keeps at most one live execution per logical key

Every unit created by the launcher carries its logical key as a label. Before a new unit is
created for that key, all the others that have not finished are deleted, and the reaper waits
until the container manager stops listing them.
"""

import time
from concurrent.futures import ThreadPoolExecutor

from tugboat.bay.captain import Captain
from tugboat.common.constants import LabelConst
from tugboat.common.errors import MutualExclusionTimeout
from tugboat.common.logging import Logged


class Reaper(Logged):
    
    MAX_WORKERS = 8
    
    def __init__(self, captain: Captain, label_key: str = LabelConst.CONNECTION_ID, timeout: float = 45,
                 backoff: float = 1, log=None):
        
        Logged.__init__(self, log=log)
        self.captain = captain
        self.label_key = label_key
        self.timeout = timeout
        self.backoff = backoff
    
    def find_stale(self, logical_key: str, spare: str = None):
        
        return self.captain.list_non_terminal(self.label_key, logical_key, spare=spare)
    
    def _delete(self, unit):
        
        try:
            return self.captain.delete(unit)
        except Exception as e:
            self.LOG.error("Failed to delete unit '{}': {}".format(self.captain.name_of(unit), repr(e)))
            return False
    
    def reap_all(self, logical_key: str, spare: str = None):
        
        units = self.find_stale(logical_key, spare=spare)
        
        if len(units) == 0:
            return []
        
        reaped = []
        started = time.monotonic()
        
        while len(units) > 0 and time.monotonic() - started < self.timeout:
            names = self.captain.names_of(units)
            self.LOG.warn("There are currently running units for '{}': {}".format(logical_key, names))
            self.LOG.info("Attempting to delete units: {}".format(names))
            
            with ThreadPoolExecutor(max_workers=min(len(units), self.MAX_WORKERS)) as pool:
                list(pool.map(self._delete, units))
            
            reaped += [n for n in names if n not in reaped]
            self.LOG.info("Waiting for deletion...")
            time.sleep(self.backoff)
            units = self.find_stale(logical_key, spare=spare)
        
        if len(units) > 0:
            raise MutualExclusionTimeout(logical_key, self.captain.names_of(units), self.timeout)
        
        self.LOG.info("Successfully deleted all running units for '{}'".format(logical_key))
        return reaped
