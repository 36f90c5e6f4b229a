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

"""Background liveness signaling scoped to a blocking call

Usage:
    with Heartbeat(callback, interval=10):
        process.wait_until_terminal()

The callback fires once on entry and then every 'interval' seconds, until the block exits.
"""

import threading

from tugboat.common.logging import Logged


class Heartbeat(Logged):
    
    def __init__(self, callback=None, interval: float = 10, log=None):
        
        Logged.__init__(self, log=log)
        assert callback is None or callable(callback)
        self.callback = callback
        self.interval = interval
        self.beats = 0
        self._stop = threading.Event()
        self._thread = None
    
    @property
    def alive(self):
        
        return self._thread is not None and self._thread.is_alive()
    
    def beat(self):
        
        try:
            self.callback()
        except Exception as e:
            self.LOG.warn("Heartbeat failed: {}".format(repr(e)))
        else:
            self.beats += 1
    
    def _loop(self):
        
        self.beat()
        
        while not self._stop.wait(self.interval):
            self.beat()
    
    def __enter__(self):
        
        if self.callback is not None:
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name='tugboat-heartbeat', daemon=True)
            self._thread.start()
        
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        
        self._stop.set()
        
        if self._thread is not None:
            self._thread.join()
        
        return False
