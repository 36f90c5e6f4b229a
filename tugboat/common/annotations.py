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

import functools
import time
from pyvalid import accepts
from pyvalid.validators import is_validator

from tugboat.common.constants import Flag
from tugboat.common.errors import TugValidationError, PatientError


def patient(func):
    
    setattr(func, Flag.PATIENT, True)
    return func


def validation(func):
    
    setattr(func, Flag.VALIDATION, True)
    return func


def validate(**checks):
    
    """Checks the named arguments of a method with pyvalid
    
    Each check is either a type or a function flagged with @validation. Such functions may return
    False or raise, and either way the call fails with TugValidationError.
    """
    
    for arg_name, check in checks.items():
        if getattr(check, Flag.VALIDATION, False):
            checks[arg_name] = _as_validator(arg_name, check)
    
    return accepts(object, **checks)


def _as_validator(arg_name: str, func):
    
    @is_validator
    def validator(value):
        
        try:
            ok = func(value)
        except Exception as e:
            raise TugValidationError("Argument '{}' failed the check '{}'".format(arg_name, func.__name__)) from e
        
        if not ok:
            raise TugValidationError("Argument '{}' failed the check '{}'".format(arg_name, func.__name__))
        
        return True
    
    return validator


class Configured(object):
    
    """Class bound to one namespace of the configuration, shared by all of its instances"""
    
    conf: dict = None


class Patient(object):
    
    """Keeps calling the methods flagged with @patient while they raise PatientError
    
    Retries happen every RETRY_INTERVAL seconds, for up to 'timeout' seconds. Then the original
    error is raised. Expects the Logged mixin for announcing the wait.
    """
    
    RETRY_INTERVAL = 1
    
    def __init__(self, timeout: float = None):
        
        self.timeout = max(float(timeout or 0), 0)
    
    def __getattribute__(self, attr_name):
        
        attr = super().__getattribute__(attr_name)
        
        if getattr(attr, Flag.PATIENT, False):
            return self._retrying(attr)
        else:
            return attr
    
    def _retrying(self, method):
        
        @functools.wraps(method)
        def wrapper(*args, **kwargs):
            deadline = time.monotonic() + self.timeout
            announced = False
            
            while True:
                try:
                    return method(*args, **kwargs)
                except PatientError as e:
                    if time.monotonic() >= deadline:
                        raise e.original_exception
                    
                    if not announced and e.waiting_message:
                        self.LOG.info(e.waiting_message)
                        announced = True
                    
                    time.sleep(self.RETRY_INTERVAL)
        
        return wrapper
