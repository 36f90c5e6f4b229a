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

"""Log channels

Every component logs through a channel (a Logger), which writes to its own rotating file and
echoes to the console unless running in background. The launcher of each logical key may get its
own channel from the LoggerHub, so that a connection's history can be read from a single file.
"""

import logging
import pathlib
from datetime import datetime
from kaptan import Kaptan
from logging.handlers import RotatingFileHandler

from tugboat.bay.compass import LoggerCompass
from tugboat.common.constants import DateFmt, LoggerConst
from tugboat.common.parser import prune, to_json, to_str


class Logger(object):
    
    FMT = '%(asctime)s - %(levelname)s - %(message)s'
    
    def __init__(self, name: str = LoggerConst.DEFAULT_NAME, **options):
        
        self.name = name
        self.options = options
        self._compass = None
        self._logger = None
    
    @property
    def compass(self) -> LoggerCompass:
        
        if self._compass is None:
            self._compass = LoggerCompass(custom_conf=dict(self.options, name=self.name))
        
        return self._compass
    
    @property
    def logger(self) -> logging.Logger:
        
        if self._logger is None:
            self._logger = self._open()
        
        return self._logger
    
    def _open(self):
        
        logger = logging.getLogger('{}.{}'.format(LoggerConst.DEFAULT_NAME, self.name))
        logger.setLevel(self.compass.lvl)
        logger.propagate = False
        
        if not logger.handlers:
            pathlib.Path(self.compass.log_file_dir).mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(**self.compass.file_handler_kwargs)
            handler.setFormatter(logging.Formatter(self.FMT, datefmt=DateFmt.READABLE))
            logger.addHandler(handler)
        
        return logger
    
    def configure(self, **options):
        
        self.options.update(options)
        self._compass = None
        
        if self._logger is not None:
            self._logger.setLevel(self.compass.lvl)
    
    @property
    def pretty(self):
        
        return self.compass.pretty
    
    @property
    def background(self):
        
        return self.compass.background
    
    @property
    def debug_mode(self):
        
        return self.logger.level == logging.DEBUG
    
    def debug(self, msg):
        
        self.log(logging.DEBUG, msg)
    
    def info(self, msg):
        
        self.log(logging.INFO, msg)
    
    def warn(self, msg):
        
        self.log(logging.WARNING, msg)
    
    warning = warn
    
    def error(self, msg):
        
        self.log(logging.ERROR, msg)
    
    def echo(self, msg):
        
        """Shows a result to the user, always rendered pretty and printed regardless of level"""
        
        self.log(logging.INFO, msg, echo=True)
    
    def log(self, level: int, msg, echo=False):
        
        text = self.render(msg, pretty=echo or self.pretty)
        self.logger.log(level, text)
        
        if self.background or not (echo or self.logger.isEnabledFor(level)):
            return
        
        if echo:
            print(text)
        else:
            print('{} - {} - {}'.format(datetime.now().strftime(DateFmt.READABLE), logging.getLevelName(level), text))
    
    def render(self, msg, pretty=False) -> str:
        
        if hasattr(msg, 'pretty'):
            msg = msg.pretty()
        
        if not pretty or not isinstance(msg, (dict, list, tuple)):
            return to_str(msg) if msg is not None else ''
        elif isinstance(msg, dict):
            return Kaptan().import_config(prune(msg)).export(handler=LoggerConst.PRETTY_FMT, default_flow_style=False)
        else:
            return to_json(list(msg), indent=4)


LOG = Logger()


class LoggerHub(object):
    
    """Named channels, all sharing the options set from the command line"""
    
    options = {}
    channels = {LoggerConst.DEFAULT_NAME: LOG}
    
    @classmethod
    def get_logger(cls, name: str = LoggerConst.DEFAULT_NAME) -> Logger:
        
        if name not in cls.channels:
            cls.channels[name] = Logger(name=name, **cls.options)
        
        return cls.channels[name]
    
    @classmethod
    def configure(cls, **options):
        
        cls.options.update(options)
        
        for logger in cls.channels.values():
            logger.configure(**options)


class Logged(object):
    
    def __init__(self, log: Logger = None):
        
        assert log is None or isinstance(log, Logger)
        self.LOG = log or LOG
