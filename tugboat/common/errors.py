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

from tugboat.common.parser import prune


def describe(exc: BaseException, depth: int = 5) -> dict:
    
    """Name and message of an error, followed by the chain of errors that caused it"""
    
    info = dict(Error=exc.__class__.__name__, Message=str(exc))
    cause = exc.__cause__
    
    if cause is not None and depth > 1:
        info['Cause'] = describe(cause, depth - 1)
    
    return prune(info)


class PrettyError(Exception):
    
    """Base of every tugboat error. The CLI renders it with its causes through pretty()"""
    
    def pretty(self):
        
        return describe(self)
    
    def __str__(self):
        
        return '; '.join([str(arg) for arg in self.args])


class TugClusterError(PrettyError):
    
    pass


class TugStorageError(PrettyError):
    
    pass


class TugValidationError(PrettyError):
    
    pass


class ResolutionError(PrettyError):
    
    pass


class ConfigurationError(PrettyError):
    
    pass


class MisusageError(PrettyError):
    
    pass


class MutualExclusionTimeout(PrettyError):
    
    """Stale units of a logical key survived the reaping deadline"""
    
    def __init__(self, logical_key: str, units: list, timeout):
        
        super().__init__(
            "Unable to delete units for '{}' within {} seconds: {}".format(logical_key, timeout, units)
        )
        self.logical_key = logical_key
        self.units = units


class CreationError(PrettyError):
    
    """The cluster backend refused or failed to create the unit"""
    
    pass


class LaunchError(PrettyError):
    
    """Generic failure of a launch, always chained to the error that caused it"""
    
    def __init__(self, application: str, message: str = None):
        
        super().__init__(message or "Running the launcher {} failed".format(application))
        self.application = application


class PatientError(Exception):
    
    """Transient failure of a cluster call. Methods flagged @patient retry while they raise it"""
    
    def __init__(self, original_exception: Exception, waiting_message: str = None):
        
        super().__init__(str(original_exception))
        self.original_exception = original_exception
        self.waiting_message = waiting_message
