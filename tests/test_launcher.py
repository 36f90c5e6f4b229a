# -*- coding: utf-8 -*-

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from conftest import wait_for
from tugboat.api.launcher import JobLauncher
from tugboat.api.main import Worker
from tugboat.bay.captain import KubeCaptain
from tugboat.bay.manifest import ExecutionIdentity, ExecutionStatus, JobRunConfig, LaunchSpec
from tugboat.bay.vessel import RemoteProcess
from tugboat.common.constants import ExitCause, LabelConst
from tugboat.common.errors import CreationError, LaunchError, MutualExclusionTimeout, TugClusterError, TugValidationError


KEY = 'conn-1'
JRC = JobRunConfig(job_id='7', attempt_id=0)
NAME = 'job-7-attempt-0'


def make_launcher(captain, warehouse, **kwargs):
    
    conf = dict(
        pod_name_prefix='',
        poll_interval=0.001,
        heartbeat_interval=0.01,
        reap_timeout=0.5,
        reap_backoff=0.01
    )
    conf.update(kwargs)
    return JobLauncher(captain=captain, warehouse=warehouse, **conf)


def finishes_with(warehouse, marker, content=b'', countdown=3):
    
    """Simulates the remote process: it publishes a terminal marker after a few polls"""
    
    def on_create(unit, _):
        unit.countdown = countdown
        unit.on_finish = lambda u: warehouse.put(unit_identity(u), marker, content)
    
    return on_create


def unit_identity(unit):
    
    return ExecutionIdentity(namespace='default', name=unit.name)


def test_is_a_worker(captain, warehouse):
    
    assert isinstance(make_launcher(captain, warehouse), Worker)


def test_fresh_launch_succeeds(captain, warehouse):
    
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'{"rows": 42}')
    launcher = make_launcher(captain, warehouse)
    
    outcome = launcher.launch(KEY, LaunchSpec('sync', labels={'team': 'data'}), JRC)
    
    assert outcome.succeeded
    assert outcome.payload == {'rows': 42}
    assert outcome.output == b'{"rows": 42}'
    assert captain.created == [NAME]
    assert captain.units[NAME].labels == {
        'team': 'data',
        LabelConst.JOB_ID: '7',
        LabelConst.ATTEMPT_ID: '0',
        LabelConst.WORKER_POD_KEY: LabelConst.WORKER_POD_VALUE,
        LabelConst.CONNECTION_ID: KEY
    }


def test_resume_after_success_does_not_create(captain, warehouse, identity):
    
    warehouse.put(identity, ExecutionStatus.INITIALIZING)
    warehouse.put(identity, ExecutionStatus.SUCCEEDED, b'{"rows":42}')
    
    outcome = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.succeeded
    assert outcome.payload == {'rows': 42}
    assert captain.created == []


def test_resume_attaches_to_running_unit(captain, warehouse, identity):
    
    warehouse.put(identity, ExecutionStatus.RUNNING)
    captain.add(
        NAME, {LabelConst.CONNECTION_ID: KEY},
        countdown=3,
        on_finish=lambda _: warehouse.put(identity, ExecutionStatus.SUCCEEDED, b'[1, 2]')
    )
    
    outcome = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.succeeded
    assert outcome.payload == [1, 2]
    assert captain.created == []
    assert captain.deleted == []


def test_relaunch_is_idempotent(captain, warehouse):
    
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'"ok"')
    
    first = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    second = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert first.payload == second.payload == 'ok'
    assert captain.created == [NAME]


def test_stale_units_are_deleted_before_create(captain, warehouse):
    
    captain.add('job-5-attempt-0', {LabelConst.CONNECTION_ID: KEY})
    captain.add('job-6-attempt-2', {LabelConst.CONNECTION_ID: KEY})
    captain.add('job-8-attempt-0', {LabelConst.CONNECTION_ID: 'conn-2'})
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'{}')
    
    make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert sorted(captain.events[:2]) == [('delete', 'job-5-attempt-0'), ('delete', 'job-6-attempt-2')]
    assert captain.events[2] == ('create', NAME)
    assert 'job-8-attempt-0' in captain.units


def test_stale_status_records_are_dropped(captain, warehouse):
    
    stale = ExecutionIdentity(namespace='default', name='job-5-attempt-0')
    warehouse.put(stale, ExecutionStatus.INITIALIZING)
    captain.add(stale.name, {LabelConst.CONNECTION_ID: KEY})
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'{}')
    
    assert make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC).succeeded
    assert tuple(stale) not in warehouse.records
    assert warehouse.markers(ExecutionIdentity(namespace='default', name=NAME))[0] == ExecutionStatus.INITIALIZING


def test_reap_timeout_aborts_launch(captain, warehouse):
    
    captain.add('job-5-attempt-0', {LabelConst.CONNECTION_ID: KEY}, stuck=True)
    
    with pytest.raises(MutualExclusionTimeout):
        make_launcher(captain, warehouse, reap_timeout=0.05).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert captain.created == []


def test_remote_failure_is_an_outcome(captain, warehouse):
    
    captain.on_create = finishes_with(warehouse, ExecutionStatus.FAILED, b'stack trace')
    
    outcome = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.failed
    assert outcome.exit_code == 1
    assert outcome.cause == ExitCause.FAILED


def test_success_without_output_is_a_failure(captain, warehouse):
    
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'')
    
    outcome = make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.failed
    assert outcome.cause == ExitCause.NO_OUTPUT


def test_custom_output_decoder(captain, warehouse):
    
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'raw text')
    launcher = make_launcher(captain, warehouse)
    launcher.output_decoder = lambda b: b.decode().upper()
    
    assert launcher.launch(KEY, LaunchSpec('sync'), JRC).payload == 'RAW TEXT'


def test_creation_error_propagates(captain, warehouse):
    
    captain.create_error = TugClusterError("quota exceeded")
    
    with pytest.raises(CreationError):
        make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)


def test_launcher_can_launch_again_after_failure(captain, warehouse):
    
    launcher = make_launcher(captain, warehouse)
    captain.create_error = TugClusterError("quota exceeded")
    
    with pytest.raises(CreationError):
        launcher.launch(KEY, LaunchSpec('sync'), JRC)
    
    captain.create_error = None
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'"ok"')
    
    assert launcher.launch(KEY, LaunchSpec('sync'), JRC).payload == 'ok'
    assert launcher.process.name == NAME
    assert captain.created == [NAME]


def test_retry_creates_config_map_missed_by_first_attempt(warehouse):
    
    pod = SimpleNamespace(
        metadata=SimpleNamespace(name=NAME, uid='uid-7'),
        status=SimpleNamespace(phase='Pending', container_statuses=None)
    )
    kube = KubeCaptain(api_client=MagicMock())
    kube.core_api = MagicMock()
    kube.core_api.list_namespaced_pod.return_value.items = []
    kube.core_api.create_namespaced_pod.side_effect = [pod, ApiException(status=409)]
    kube.core_api.read_namespaced_pod.return_value = pod
    
    def create_config_map(namespace, body):
        if kube.core_api.create_namespaced_config_map.call_count == 1:
            raise ApiException(status=500)
        
        warehouse.put(ExecutionIdentity(namespace, body['metadata']['name']), ExecutionStatus.SUCCEEDED, b'3')
    
    kube.core_api.create_namespaced_config_map.side_effect = create_config_map
    launcher = make_launcher(kube, warehouse)
    spec = LaunchSpec('sync', input_files={'input.json': b'{}'})
    
    with pytest.raises(CreationError):
        launcher.launch(KEY, spec, JRC)
    
    assert launcher.launch(KEY, spec, JRC).payload == 3
    assert kube.core_api.create_namespaced_config_map.call_count == 2


def test_other_faults_become_launch_errors(captain, warehouse):
    
    warehouse.fail_reads = True
    
    with pytest.raises(LaunchError) as exc_info:
        make_launcher(captain, warehouse).launch(KEY, LaunchSpec('sync'), JRC)
    
    assert exc_info.value.application == 'sync'
    assert exc_info.value.__cause__ is not None


def test_heartbeat_fires_during_wait(captain, warehouse):
    
    beats = []
    captain.on_create = finishes_with(warehouse, ExecutionStatus.SUCCEEDED, b'{}', countdown=50)
    launcher = make_launcher(captain, warehouse, poll_interval=0.002)
    launcher.heartbeat = lambda: beats.append(1)
    
    assert launcher.launch(KEY, LaunchSpec('sync'), JRC).succeeded
    assert len(beats) >= 1


def test_cancel_before_launch(captain, warehouse):
    
    launcher = make_launcher(captain, warehouse)
    
    assert launcher.cancel() is False
    
    outcome = launcher.launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.cancelled
    assert captain.created == []


def test_cancel_during_wait(captain, warehouse):
    
    launcher = make_launcher(captain, warehouse, poll_interval=0.005)
    outcomes = []
    thread = threading.Thread(
        target=lambda: outcomes.append(launcher.launch(KEY, LaunchSpec('sync'), JRC))
    )
    thread.start()
    
    wait_for(lambda: NAME in captain.units and launcher.process is not None)
    
    assert launcher.cancel() is True
    
    thread.join(timeout=5)
    
    assert outcomes[0].cancelled
    assert NAME not in captain.units


def test_cancellation_takes_precedence_over_success(captain, warehouse):
    
    launcher = make_launcher(captain, warehouse)
    
    def on_create(unit, _):
        def on_finish(u):
            warehouse.put(unit_identity(u), ExecutionStatus.SUCCEEDED, b'{"rows": 1}')
            launcher.cancel()
        
        unit.countdown = 2
        unit.on_finish = on_finish
    
    captain.on_create = on_create
    
    outcome = launcher.launch(KEY, LaunchSpec('sync'), JRC)
    
    assert outcome.cancelled
    assert outcome.payload is None


def test_cancel_gives_up_after_configured_attempts(captain, warehouse, identity):
    
    warehouse.put(identity, ExecutionStatus.RUNNING)
    captain.add(NAME)  # not labeled, so reaping never reaches it
    launcher = make_launcher(captain, warehouse, cancel_attempts=3)
    launcher._publish(KEY, RemoteProcess(identity, captain=captain, warehouse=warehouse, poll_interval=0))
    reaps = []
    reap_all = launcher.reaper.reap_all
    launcher.reaper.reap_all = lambda key, spare=None: reaps.append(key) or reap_all(key, spare=spare)
    
    assert launcher.cancel() is False
    assert reaps == [KEY, KEY, KEY]
    assert NAME in captain.units
    assert launcher.cancelled


def test_inspect_and_reap(captain, warehouse, identity):
    
    warehouse.put(identity, ExecutionStatus.INITIALIZING)
    warehouse.put(identity, ExecutionStatus.RUNNING)
    captain.add('job-5-attempt-0', {LabelConst.CONNECTION_ID: KEY})
    launcher = make_launcher(captain, warehouse)
    
    assert launcher.inspect(JRC) == dict(
        unit='default/job-7-attempt-0',
        status=ExecutionStatus.RUNNING,
        markers=['INITIALIZING', 'RUNNING']
    )
    assert launcher.reap(KEY) == dict(logical_key=KEY, reaped=['job-5-attempt-0'])


def test_blank_logical_key_is_rejected(captain, warehouse):
    
    with pytest.raises(TugValidationError):
        make_launcher(captain, warehouse).launch('  ', LaunchSpec('sync'), JRC)
    
    assert captain.events == []
