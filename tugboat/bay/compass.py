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

"""
This module helps with configuration resolutions

Each compass wraps one namespace of the configuration file and exposes typed, validated
accessors to it. Any value may be overridden per instance by passing a custom_conf mapping.
"""

import os
from abc import abstractmethod

from tugboat.common.annotations import Configured
from tugboat.common.conf import LazyConf, LoggerConf, CaptainConf, StoreConf, LauncherConf
from tugboat.common.constants import LoggerConst, DockerConst, Encoding, LabelConst, OrchestratorConst
from tugboat.common.errors import ConfigurationError, TugClusterError
from tugboat.common.parser import resolve_log_level
from tugboat.common.utils import am_i_on_board, unit_name


class Compass(Configured):
    
    conf: LazyConf = None
    
    def __init__(self, custom_conf: dict = None):
        
        self.conf.ensure()
        
        if custom_conf:
            self.conf = dict(self.conf, **custom_conf)
    
    def _positive_number(self, key: str, default, allow_zero=True):
        
        num = self.conf.get(key, default)
        
        if not isinstance(num, (int, float)) or isinstance(num, bool) or num < 0 or (num == 0 and not allow_zero):
            raise ConfigurationError("Option '{}' must be a {} number, but is: {}".format(
                key, 'non negative' if allow_zero else 'positive', num))
        
        return num


class LoggerCompass(Compass):
    
    conf = LoggerConf
    
    KEY_NAME = 'name'
    KEY_LVL = 'level'
    KEY_DIR = 'directory'
    KEY_MAX_BYTES = 'max_bytes'
    KEY_BKP_COUNT = 'bkp_count'
    KEY_PRETTY = 'pretty'
    KEY_BACKGROUND = 'background'
    
    @property
    def name(self):
        
        return self.conf.get(self.KEY_NAME, LoggerConst.DEFAULT_NAME)
    
    @property
    def lvl(self):
        
        return resolve_log_level(self.conf[self.KEY_LVL])
    
    @property
    def max_bytes(self):
        
        return self.conf[self.KEY_MAX_BYTES]
    
    @property
    def bkp_count(self):
        
        return self.conf[self.KEY_BKP_COUNT]
    
    @property
    def pretty(self):
        
        return bool(self.conf.get(self.KEY_PRETTY, False))
    
    @property
    def background(self):
        
        return bool(self.conf.get(self.KEY_BACKGROUND, False))
    
    @property
    def log_file_dir(self):
        
        if am_i_on_board():
            return os.path.join(LoggerConst.DIR_ON_BOARD, unit_name())
        else:
            return self.conf.get(self.KEY_DIR) or LoggerConst.DEFAULT_DIR_OFFBOARD
    
    @property
    def log_file_name(self):
        
        return '{}.{}'.format(self.name, LoggerConst.FILE_EXT)
    
    @property
    def path_to_log_file(self):
        
        return os.path.join(self.log_file_dir, self.log_file_name)
    
    @property
    def file_handler_kwargs(self):
        
        return dict(
            filename=self.path_to_log_file,
            maxBytes=self.max_bytes,
            backupCount=self.bkp_count,
            encoding=Encoding.UTF_8
        )


class CaptainCompass(Compass):
    
    conf = CaptainConf
    KEY_TYPE = 'type'
    KEY_PROFILES = 'resource_profiles'
    KEY_TIMEOUT = 'api_timeout'
    KEY_IMAGE = 'image'
    KEY_REGISTRY_SECRET = 'registry_secret'
    KEYS_RESOURCES = ['limits', 'requests']
    DEFAULT_TIMEOUT = None
    
    @property
    def tipe(self):
        
        return self.conf.get(self.KEY_TYPE, DockerConst.Managers.KUBE)
    
    @property
    def api_timeout(self):
        
        return self.conf.get(self.KEY_TIMEOUT, self.DEFAULT_TIMEOUT)
    
    @property
    def image(self):
        
        return self.conf.get(self.KEY_IMAGE) or DockerConst.DEFAULT_IMG
    
    @property
    def secret(self):
        
        return self.conf.get(self.KEY_REGISTRY_SECRET)
    
    def get_resource_profile(self, ref_to_profile: str):
        
        prof = (self.conf.get(self.KEY_PROFILES) or {}).get(ref_to_profile)
        
        if prof is None:
            raise ConfigurationError("Resource profile '{}' not found".format(ref_to_profile))
        
        return self.assert_profile(prof)
    
    def assert_profile(self, profile: dict):
        
        if not isinstance(profile, dict):
            raise ConfigurationError("Resource profile must be a dictionary, but is: {}".format(type(profile)))
        
        if profile.get(self.KEYS_RESOURCES[0]) or profile.get(self.KEYS_RESOURCES[1]):
            profile = self.assert_resources(profile)
        
        return profile
    
    def assert_resources(self, profile: dict):
        
        for key in self.KEYS_RESOURCES:
            for res, unit in zip(['cpu', 'memory'], ['vCores', 'MB']):
                num = (profile.get(key) or {}).get(res)
                
                if num is None:
                    continue
                elif res == 'memory':
                    if not isinstance(num, int):
                        raise TugClusterError(
                            "Resource {} '{}' must be an integer ({})".format(key.rstrip('s'), res, unit))
                elif isinstance(num, str):
                    num = num.strip()
                    
                    if not num.endswith('m'):
                        raise TugClusterError('When string, CPU must be in milli notation. Example: "500m"')
                    
                    num = float(num[:-1]) / 1000
                    profile[key][res] = num
                elif not isinstance(num, (int, float)):
                    raise TugClusterError(
                        "Resource {} '{}' must be integer or float or string ({})".format(key.rstrip('s'), res, unit))
                
                if res == 'cpu' and num < 0.001:
                    raise TugClusterError("CPU precision must be at least 0.001, but was: {}".format(num))
        
        return profile
    
    @abstractmethod
    def get_namespace(self):
        
        pass


class KubeCompass(CaptainCompass):
    
    KEY_NAMESPACE = 'namespace'
    KEY_IN_CLUSTER = 'in_cluster'
    DEFAULT_NAMESPACE = 'default'
    DEFAULT_TIMEOUT = 60
    
    def get_namespace(self):
        
        namespace = self.conf.get(self.KEY_NAMESPACE, self.DEFAULT_NAMESPACE)
        
        if not isinstance(namespace, str) or len(namespace) == 0:
            raise ConfigurationError("Container manager 'kube' requires an existing namespace to be configured")
        
        return namespace
    
    @property
    def in_cluster(self):
        
        return bool(self.conf.get(self.KEY_IN_CLUSTER, False))


class StoreCompass(Compass):
    
    conf = StoreConf
    KEY_TYPE = 'type'
    
    @property
    def tipe(self):
        
        return self.conf[self.KEY_TYPE]


class CassStoreCompass(StoreCompass):
    
    KEY_HOSTS = 'hosts'
    KEY_PORT = 'port'
    KEY_KEYSPACE = 'keyspace'
    KEY_REPLICATION = 'replication'
    DEFAULT_PORT = 9042
    DEFAULT_KEYSPACE = 'tugboat'
    
    @property
    def hosts(self):
        
        hosts = self.conf.get(self.KEY_HOSTS) or ['localhost']
        
        if isinstance(hosts, str):
            hosts = [h.strip() for h in hosts.split(',')]
        
        return hosts
    
    @property
    def port(self):
        
        return int(self.conf.get(self.KEY_PORT, self.DEFAULT_PORT))
    
    @property
    def keyspace(self):
        
        return self.conf.get(self.KEY_KEYSPACE) or self.DEFAULT_KEYSPACE
    
    @property
    def replication(self):
        
        return int(self.conf.get(self.KEY_REPLICATION, 1))


class LauncherCompass(Compass):
    
    conf = LauncherConf
    
    KEY_PREFIX = 'pod_name_prefix'
    KEY_LABEL = 'label_key'
    KEY_POLL = 'poll_interval'
    KEY_HEARTBEAT = 'heartbeat_interval'
    KEY_REAP_TIMEOUT = 'reap_timeout'
    KEY_REAP_BACKOFF = 'reap_backoff'
    KEY_CANCEL_ATTEMPTS = 'cancel_attempts'
    KEY_ENV_VARS = 'env_vars_to_transfer'
    
    @property
    def pod_name_prefix(self):
        
        return self.conf.get(self.KEY_PREFIX) or ''
    
    @property
    def label_key(self):
        
        return self.conf.get(self.KEY_LABEL) or LabelConst.CONNECTION_ID
    
    @property
    def poll_interval(self):
        
        return self._positive_number(self.KEY_POLL, 5, allow_zero=False)
    
    @property
    def heartbeat_interval(self):
        
        return self._positive_number(self.KEY_HEARTBEAT, 10, allow_zero=False)
    
    @property
    def reap_timeout(self):
        
        return self._positive_number(self.KEY_REAP_TIMEOUT, 45)
    
    @property
    def reap_backoff(self):
        
        return self._positive_number(self.KEY_REAP_BACKOFF, 1)
    
    @property
    def cancel_attempts(self):
        
        attempts = self.conf.get(self.KEY_CANCEL_ATTEMPTS, OrchestratorConst.CANCEL_ATTEMPTS)
        
        if not isinstance(attempts, int) or attempts < 1:
            raise ConfigurationError("Option '{}' must be a positive integer".format(self.KEY_CANCEL_ATTEMPTS))
        
        return attempts
    
    @property
    def env_vars_to_transfer(self):
        
        return list(self.conf.get(self.KEY_ENV_VARS) or [])
    
    def transferable_env(self, environ: dict = None):
        
        environ = os.environ if environ is None else environ
        
        return dict([
            (k, environ[k]) for k in self.env_vars_to_transfer
            if k in environ
        ])
