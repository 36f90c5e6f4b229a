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

"""Configuration files, one YAML document split in namespaces

Sources, from the lowest to the highest precedence: the defaults shipped with the package, the
user's home (or the conf mounted in the unit, when on board) and the working directory. When a
local file exists the user's file is skipped entirely.
"""

import os
from kaptan import Kaptan

from tugboat.common.constants import Package, Config, HostUser
from tugboat.common.errors import ConfigurationError
from tugboat.common.parser import merge_dicts
from tugboat.common.utils import am_i_on_board


class ConfSource(object):
    
    PKG = Package.CONF
    USER = HostUser.CONF
    LOCAL = Config.LOCAL
    ON_BOARD = Config.ON_BOARD
    
    @classmethod
    def resolve(cls):
        
        return [cls.PKG, cls.ON_BOARD if am_i_on_board() else cls.USER, cls.LOCAL]


class LazyConf(dict):
    
    """One namespace of the configuration, read from disk the first time a compass needs it"""
    
    def __init__(self, namespace: str, sources: list = None):
        
        super().__init__()
        self.namespace = namespace
        self.sources = sources
        self.loaded = False
    
    def _read(self, path: str) -> dict:
        
        if not os.path.exists(path):
            return None
        
        try:
            doc = Kaptan(handler=Config.FMT).import_config(path).configuration_data
        except Exception as e:
            raise ConfigurationError("Could not read configuration file {}".format(path)) from e
        
        return (doc or {}).get(self.namespace) or {}
    
    def ensure(self):
        
        return self if self.loaded else self.load()
    
    def load(self):
        
        default_src, user_src, local_src = self.sources or ConfSource.resolve()
        default = self._read(default_src)
        
        if default is None:
            raise ConfigurationError("Default configuration not found at {}".format(default_src))
        
        local = self._read(local_src)
        override = local if local is not None else self._read(user_src)
        
        self.clear()
        self.update(merge_dicts(default, override))
        self.loaded = True
        return self


LoggerConf = LazyConf(namespace=Config.Namespace.LOGGER)
CaptainConf = LazyConf(namespace=Config.Namespace.DOCKER_MANAGER)
StoreConf = LazyConf(namespace=Config.Namespace.STATUS_STORE)
LauncherConf = LazyConf(namespace=Config.Namespace.LAUNCHER)
