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

"""Module for keeping widely used constants"""

import os
import re


class FrameworkConst(object):
    
    FW_NAME = 'tugboat'
    FW_VERSION = '0.3.0'


class Encoding(object):
    
    """Common file encodings"""
    
    ASCII = 'ascii'
    UTF_8 = 'UTF-8'
    DEFAULT = UTF_8


class Flag(object):
    
    """Flags for changing a method's behaviour"""
    
    VALIDATION = 'this_method_is_an_argument_validation'
    PATIENT = 'this_method_retries_until_timeout_is_exceeded'
    KEYSP_DEP = 'this_method_depends_on_the_existence_of_a_keyspace'
    TABLE_DEP = 'this_method_depends_on_the_existence_of_a_table'


class EnvVar(object):
    
    """Names of environment variables"""
    
    ON_BOARD = 'AM_I_ON_BOARD'
    NAMESPACE = 'TUGBOAT_NAMESPACE'
    POD_NAME = 'TUGBOAT_POD_NAME'


class DateFmt(object):
    
    """Common datetime formats"""
    
    READABLE = '%Y-%m-%d %H:%M:%S'
    DEFAULT = READABLE


class Extension(object):
    
    """Common file extensions"""
    
    JSON = 'json'
    TXT = 'txt'
    YAML = 'yaml'
    LOG = 'log'


class Regex(object):
    
    """Regular expressions"""
    
    YAML_BREAK = re.compile(r'\n[^- ]')


class OnBoard(object):
    
    """Paths inside a managed container"""
    
    TUG_HOME = '/tugboat'
    CONF_DIR = os.path.join(TUG_HOME, 'conf')
    INIT_DIR = '/config'  # where the input files are mounted
    LOG_DIR = '/logs'


class Config(object):
    
    """Name conventions in configuration files and paths"""
    
    FMT = 'yaml'
    EXT = FMT
    FILE = 'tugboat.{}'.format(EXT)
    LOCAL = os.path.join(os.getcwd(), FILE)
    ON_BOARD = os.path.join(OnBoard.CONF_DIR, FILE)
    
    class Namespace(object):
        
        """Namespaces that may be found inside configuration files"""
        
        LOGGER = 'logger'
        DOCKER_MANAGER = 'container_manager'
        STATUS_STORE = 'status_store'
        LAUNCHER = 'launcher'


class Package(object):
    
    """Paths inside the python package"""
    
    BASE = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    RESOURCES = os.path.join(BASE, 'resources')
    CONF = os.path.join(RESOURCES, Config.FILE)


class HostUser(object):
    
    """Paths inside the user home on host machines"""
    
    HOME = os.path.expanduser('~')
    TUG = os.path.join(HOME, '.tugboat')
    LOG_DIR = os.path.join(TUG, 'logs')
    CONF = os.path.join(TUG, Config.FILE)


class LoggerConst(object):
    
    """Constants used when logging"""
    
    DEFAULT_NAME = FrameworkConst.FW_NAME
    FILE_EXT = Extension.LOG
    DIR_ON_BOARD = OnBoard.LOG_DIR  # log directory inside a container, mapped to outside volume/mount
    DEFAULT_DIR_OFFBOARD = HostUser.LOG_DIR
    PRETTY_FMT = 'yaml'


class Task(object):
    
    """Standards for describing the outcome of a launch"""
    
    class State(object):
        
        SUCCEEDED = 'succeeded'
        FAILED = 'failed'
        CANCELLED = 'cancelled'
        
        ALL = [SUCCEEDED, FAILED, CANCELLED]


class ExitCode(object):
    
    SUCCESS = 0
    FAILURE = 1


class ExitCause(object):
    
    """Why a remote process is considered finished"""
    
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    DISAPPEARED = 'disappeared'  # unit vanished before writing a terminal status
    NO_STATUS = 'no status'  # unit terminated without writing a terminal status
    NO_OUTPUT = 'no readable output'
    CANCELLED = 'cancelled'


class DockerConst(object):
    
    """Container-related nomenclature standards"""
    
    LATEST = 'latest'
    DEFAULT_IMG = 'tugboat/orchestrator:{}'.format(LATEST)
    CONTAINER_NAME = 'main'
    
    class Managers(object):
        
        KUBE = 'kube'


class KubeConst(object):
    
    FOREGROUND = 'Foreground'
    NOT_FOUND = 404
    CONFLICT = 409
    
    class Phase(object):
        
        PENDING = 'Pending'
        RUNNING = 'Running'
        SUCCEEDED = 'Succeeded'
        FAILED = 'Failed'
        UNKNOWN = 'Unknown'
        TERMINAL = [SUCCEEDED, FAILED]


class StoreConst(object):
    
    class Types(object):
        
        CASS = 'cass'
    
    TABLE_NAME = 'status_record'


class LabelConst(object):
    
    """Labels attached to every unit created by the launcher"""
    
    JOB_ID = 'job_id'
    ATTEMPT_ID = 'attempt_id'
    WORKER_POD_KEY = 'tugboat'
    WORKER_POD_VALUE = 'orchestrator-pod'
    CONNECTION_ID = 'connection_id'


class OrchestratorConst(object):
    
    """Conventions shared with the process running inside the unit"""
    
    INIT_FILE_APPLICATION = 'application.{}'.format(Extension.TXT)
    INIT_FILE_JOB_RUN_CONFIG = 'jobRunConfig.{}'.format(Extension.JSON)
    INIT_FILE_INPUT = 'input.{}'.format(Extension.JSON)
    INIT_FILE_ENV_MAP = 'envMap.{}'.format(Extension.JSON)
    
    HEARTBEAT_PORT = 9000
    PORT1 = 9877
    PORT2 = 9878
    PORT3 = 9879
    PORT4 = 9880
    PORTS = [HEARTBEAT_PORT, PORT1, PORT2, PORT3, PORT4]
    
    CANCEL_ATTEMPTS = 2
