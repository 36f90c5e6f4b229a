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

"""Module used to create, find and delete execution units in the container manager"""

import base64
from abc import ABC, abstractmethod
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException as K8sApiException
from typing import Type, List

from tugboat.bay.compass import CaptainCompass, KubeCompass
from tugboat.bay.manifest import ExecutionIdentity, LaunchSpec
from tugboat.common.annotations import Configured, Patient, patient
from tugboat.common.conf import CaptainConf
from tugboat.common.constants import DockerConst, KubeConst, EnvVar, OnBoard
from tugboat.common.errors import ResolutionError, TugClusterError, PatientError
from tugboat.common.logging import Logged
from tugboat.common.parser import prune


class Captain(ABC, Configured, Patient, Logged):
    
    conf = CaptainConf
    compass_cls: Type[CaptainCompass] = None
    
    def __init__(self, **kwargs):
        
        Logged.__init__(self, log=kwargs.get('log'))
        self.compass = self.compass_cls()
        self.namespace = self.compass.get_namespace()
        Patient.__init__(self, timeout=self.compass.api_timeout)
    
    @abstractmethod
    def list_non_terminal(self, label_key: str, label_value: str, spare: str = None) -> list:
        
        """Units carrying the label that have not reached a terminal state, except the one named 'spare'"""
    
    @abstractmethod
    def delete(self, unit):
        
        """Deletes a unit and its dependents, returns False if it was already gone"""
    
    @abstractmethod
    def create(self, identity: ExecutionIdentity, spec: LaunchSpec, labels: dict):
        
        """Creates the unit and its dependents. Resources left by a previous attempt are reused"""
    
    @abstractmethod
    def find(self, identity: ExecutionIdentity):
        
        """The unit addressed by the identity, or None"""
    
    @abstractmethod
    def is_terminal(self, unit) -> bool:
        
        pass
    
    @abstractmethod
    def exit_code_of(self, unit):
        
        """Exit code reported by the terminated unit, or None if it has not reported one"""
    
    @abstractmethod
    def name_of(self, unit) -> str:
        
        pass
    
    def names_of(self, units: list) -> List[str]:
        
        return [self.name_of(u) for u in units]
    
    def selector(self, label_key: str, label_value: str):
        
        return '{}={}'.format(label_key, label_value)


class KubeCaptain(Captain):
    
    compass_cls = KubeCompass
    
    INIT_VOLUME = 'init-files'
    
    def __init__(self, api_client: k8s_client.ApiClient = None, **kwargs):
        
        super().__init__(**kwargs)
        self.secret = self.compass.secret
        
        if api_client is None:
            if self.compass.in_cluster:
                k8s_config.load_incluster_config()
            else:
                k8s_config.load_kube_config()
            
            api_client = k8s_client.ApiClient()
        
        self.api_client = api_client
        self.core_api = k8s_client.CoreV1Api(self.api_client)
    
    @patient
    def list_non_terminal(self, label_key: str, label_value: str, spare: str = None):
        
        try:
            pods = self.core_api.list_namespaced_pod(
                namespace=self.namespace,
                label_selector=self.selector(label_key, label_value)
            ).items
        except K8sApiException as e:
            msg = "Waiting up to {} seconds to list pods labeled {}={}".format(self.timeout, label_key, label_value)
            raise PatientError(e, waiting_message=msg)
        
        return [
            pod for pod in pods
            if not self.is_terminal(pod) and self.name_of(pod) != spare
        ]
    
    def delete(self, pod):
        
        name = self.name_of(pod)
        
        try:
            self.core_api.delete_namespaced_pod(
                name=name,
                namespace=self.namespace,
                body=k8s_client.V1DeleteOptions(propagation_policy=KubeConst.FOREGROUND)
            )
        except K8sApiException as e:
            if e.status == KubeConst.NOT_FOUND:
                self.LOG.debug("Pod '{}' was already gone".format(name))
                return False
            else:
                raise TugClusterError("Could not delete pod '{}'".format(name)) from e
        
        return True
    
    @patient
    def find(self, identity: ExecutionIdentity):
        
        try:
            return self.core_api.read_namespaced_pod(name=identity.name, namespace=identity.namespace)
        except K8sApiException as e:
            if e.status == KubeConst.NOT_FOUND:
                return None
            
            msg = "Waiting up to {} seconds to find pod '{}'".format(self.timeout, identity.name)
            raise PatientError(e, waiting_message=msg)
    
    def is_terminal(self, pod) -> bool:
        
        status = pod.status
        
        if status is None:
            return False
        elif status.phase in KubeConst.Phase.TERMINAL:
            return True
        
        cont_statuses = status.container_statuses or []
        
        return len(cont_statuses) > 0 and all(
            cs.state is not None and cs.state.terminated is not None
            for cs in cont_statuses
        )
    
    def name_of(self, pod) -> str:
        
        return pod.metadata.name
    
    def exit_code_of(self, pod):
        
        statuses = (pod.status.container_statuses if pod.status else None) or []
        codes = [
            cs.state.terminated.exit_code for cs in statuses
            if cs.state is not None and cs.state.terminated is not None
        ]
        
        if not codes:
            return None
        
        return next((code for code in codes if code), 0)
    
    def create(self, identity: ExecutionIdentity, spec: LaunchSpec, labels: dict):
        
        template = self.make_pod(identity, spec, labels)
        self.LOG.debug(template)
        
        try:
            pod = self.create_pod(identity, template)
            
            if spec.input_files:
                self.create_config_map(identity, spec, labels, owner=pod)
        except K8sApiException as e:
            raise TugClusterError("Could not create pod '{}'".format(identity.name)) from e
        
        return pod
    
    def create_pod(self, identity: ExecutionIdentity, template: dict):
        
        self.LOG.info("Creating Pod '{}'".format(identity.name))
        
        try:
            return self.core_api.create_namespaced_pod(namespace=identity.namespace, body=template)
        except K8sApiException as e:
            if e.status != KubeConst.CONFLICT:
                raise
        
        self.LOG.warn("Pod '{}' already exists. Attaching".format(identity.name))
        return self.core_api.read_namespaced_pod(name=identity.name, namespace=identity.namespace)
    
    def create_config_map(self, identity: ExecutionIdentity, spec: LaunchSpec, labels: dict, owner):
        
        """Input files travel in a ConfigMap owned by the pod, so that deleting the pod removes them"""
        
        template = dict(
            apiVersion='v1',
            kind='ConfigMap',
            metadata=dict(
                name=identity.name,
                namespace=identity.namespace,
                labels=labels,
                ownerReferences=[dict(
                    apiVersion='v1',
                    kind='Pod',
                    name=owner.metadata.name,
                    uid=owner.metadata.uid,
                    blockOwnerDeletion=True
                )]
            ),
            binaryData=dict([
                (name, base64.b64encode(content).decode('ascii'))
                for name, content in spec.input_files.items()
            ])
        )
        
        self.LOG.debug("Creating ConfigMap '{}' with files: {}".format(identity.name, sorted(spec.input_files)))
        
        try:
            return self.core_api.create_namespaced_config_map(namespace=identity.namespace, body=template)
        except K8sApiException as e:
            if e.status != KubeConst.CONFLICT:
                raise
        
        self.LOG.debug("ConfigMap '{}' already exists".format(identity.name))
        return None
    
    def make_pod(self, identity: ExecutionIdentity, spec: LaunchSpec, labels: dict) -> dict:
        
        env_vars = dict(spec.env_vars)
        env_vars.update({
            EnvVar.ON_BOARD: 'true',
            EnvVar.NAMESPACE: identity.namespace,
            EnvVar.POD_NAME: identity.name
        })
        
        container = dict(
            name=DockerConst.CONTAINER_NAME,
            image=spec.image or self.compass.image,
            imagePullPolicy='IfNotPresent',
            env=self.kube_env_vars(env_vars),
            ports=self.kube_ports(spec.port_mappings),
            resources=self.kube_resources(spec.resource_requirements)
        )
        
        volumes = []
        
        if spec.input_files:
            container['volumeMounts'] = [dict(name=self.INIT_VOLUME, mountPath=OnBoard.INIT_DIR)]
            volumes.append(dict(name=self.INIT_VOLUME, configMap={'name': identity.name}))
        
        return prune(dict(
            apiVersion='v1',
            kind='Pod',
            metadata=dict(name=identity.name, namespace=identity.namespace, labels=labels),
            spec={
                'restartPolicy': 'Never',
                'containers': [container],
                'volumes': volumes,
                'imagePullSecrets': [{'name': self.secret}] if self.secret else []
            }
        ))
    
    def kube_env_vars(self, env_vars: dict):
        
        return [
            dict(name=k, value=str(v))
            for k, v in env_vars.items()
        ]
    
    def kube_ports(self, port_mappings: dict):
        
        return [
            {'containerPort': tgt}
            for tgt in sorted(set(port_mappings.values()))
        ]
    
    def kube_resources(self, resources: dict = None):
        
        if not resources:
            return None
        
        resources = self.compass.assert_profile(resources)
        res = {}
        
        for key in self.compass.KEYS_RESOURCES:
            if resources.get(key):
                res[key] = prune(dict(
                    cpu=resources[key].get('cpu'),
                    memory=self.kube_memory(resources[key].get('memory'))
                ))
        
        return res
    
    def kube_memory(self, mem):
        
        if not mem:
            return None
        
        if mem >= 1024 and mem % 1024 == 0:
            mem = int(mem/1024)
            unit = 'Gi'
        else:
            unit = 'Mi'
        
        return '{}{}'.format(mem, unit)


def get_captain(**kwargs) -> Captain:
    
    manager_ref = CaptainCompass().tipe
    cls_lookup = {
        DockerConst.Managers.KUBE: KubeCaptain
    }
    
    try:
        captain_cls: Type[Captain] = cls_lookup[manager_ref.strip().lower()]
    except (KeyError, AttributeError):
        raise ResolutionError(
            "Could not resolve container manager by reference '{}'. Options are: {}"
            .format(manager_ref, list(cls_lookup.keys()))
        )
    else:
        return captain_cls(**kwargs)
