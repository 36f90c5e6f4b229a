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
Tugboat launches jobs as Kubernetes pods, making sure
a single one runs at a time for each logical key
"""

from setuptools import find_packages, setup


setup(
    name='tugboat',
    version='0.3.0',
    author='Tugboat Development Team',
    description='Single-active job launcher for Kubernetes',
    long_description=__doc__,
    zip_safe=False,
    platforms=['Unix'],
    license='Apache-2.0',
    python_requires='>=3.6',
    install_requires=[
        req for req in open('./requirements/requirements.txt').read().split('\n')
        if req.strip()
    ],
    extras_require={
        'test': ['pytest']
    },
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    package_data={
        'tugboat': [
            'resources/tugboat.yaml'
        ]
    },
    entry_points={
        'console_scripts': [
            '{alias}={entry_point}'.format(alias=alias, entry_point='tugboat.cli.main:tug')
            for alias in ['tugboat', 'tug']
        ]
    },
    classifiers=[
        # As from http://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: Unix',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Distributed Computing'
    ]
)
