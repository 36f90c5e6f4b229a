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

"""Conversions between the shapes a launch goes through

Job inputs arrive as CLI strings or dicts, travel to the unit as ConfigMap bytes and come back
from the status store as bytes again. Manifests and outcomes are pruned of empty values before
being sent to the cluster or shown to the user.
"""

import json
import logging

from tugboat.common.constants import Encoding

EMPTY = (None, '', [], {}, ())


def prune(x, nones=EMPTY, depth: int = 5):
    
    """Drops empty values from nested dicts and lists, down to 'depth' levels"""
    
    if depth <= 0:
        return x
    elif isinstance(x, dict):
        pruned = [(k, prune(v, nones, depth - 1)) for k, v in x.items()]
        return dict([(k, v) for k, v in pruned if v not in nones])
    elif isinstance(x, (list, tuple)):
        pruned = [prune(v, nones, depth - 1) for v in x]
        return [v for v in pruned if v not in nones]
    else:
        return x


def parse_pairs(items, delimiter='=') -> dict:
    
    """Turns ['KEY=VALUE', ...] into a dict. Only the first delimiter splits, so values may contain it"""
    
    pairs = {}
    
    for item in items or []:
        key, sep, value = to_str(item).partition(delimiter)
        
        if not sep or not key.strip():
            raise ValueError("Expected '{}' in the syntax key{}value".format(item, delimiter))
        
        pairs[key.strip()] = value
    
    return pairs


def merge_dicts(base: dict, override: dict, allow_overwrite=True) -> dict:
    
    merged = dict(base or {})
    
    for key, value in (override or {}).items():
        if key in merged and not allow_overwrite:
            raise KeyError("Duplicated key: {}".format(key))
        
        merged[key] = value
    
    return merged


def to_str(x, allow_empty=True, encoding=Encoding.UTF_8) -> str:
    
    if x is None:
        raise TypeError("Cannot coerce None to str")
    
    x = x.decode(encoding) if isinstance(x, bytes) else str(x)
    
    if not allow_empty and not x.strip():
        raise ValueError("Expected a non empty str")
    
    return x


def to_json(x, indent=None) -> str:
    
    # datetimes and other non JSON types are written as their str
    return json.dumps(x, indent=indent, ensure_ascii=False, default=str)


def from_json(x):
    
    return json.loads(to_str(x).strip())


def to_bytes(x, encoding=Encoding.UTF_8) -> bytes:
    
    """Payload bytes as stored: bytes verbatim, dicts and lists as JSON, anything else as its str"""
    
    if isinstance(x, bytes):
        return x
    elif isinstance(x, (dict, list)):
        return to_json(x).encode(encoding)
    else:
        return to_str(x).encode(encoding)


def resolve_log_level(lvl) -> int:
    
    if isinstance(lvl, int) and not isinstance(lvl, bool):
        return lvl
    
    level = logging.getLevelName(to_str(lvl).strip().upper())
    
    if not isinstance(level, int):
        raise ValueError("Unknown log level: {}".format(lvl))
    
    return level
