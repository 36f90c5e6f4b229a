# -*- coding: utf-8 -*-

from click.testing import CliRunner

from tugboat.bay.manifest import Outcome
from tugboat.cli import job
from tugboat.cli.main import tug
from tugboat.common.errors import MutualExclusionTimeout


class StubLauncher(object):
    
    launched = []
    outcome = None
    
    def __init__(self, **_):
        
        self.captain = None
        self.compass = type('Compass', (), {'transferable_env': staticmethod(lambda: {})})()
    
    def launch(self, logical_key, spec, job_run_config):
        
        self.launched.append((logical_key, spec, job_run_config))
        return self.outcome
    
    def cancel(self):
        
        pass
    
    def inspect(self, job_run_config):
        
        return dict(unit='default/job-{}-attempt-{}'.format(*job_run_config), status='RUNNING')
    
    def reap(self, logical_key):
        
        raise MutualExclusionTimeout(logical_key, ['job-1-attempt-0'], 45)


def stub(monkeypatch, outcome=None):
    
    StubLauncher.launched = []
    StubLauncher.outcome = outcome
    monkeypatch.setattr(job, 'JobLauncher', StubLauncher)
    monkeypatch.setattr(job, 'cancel_on_sigterm', lambda _: None)


def test_version():
    
    result = CliRunner().invoke(tug, ['version'])
    
    assert result.exit_code == 0
    assert 'Tugboat v' in result.output


def test_launch_success(monkeypatch):
    
    stub(monkeypatch, Outcome.success('sync', output=b'{}', payload={}))
    
    result = CliRunner().invoke(tug, [
        'launch', 'conn-1', '--app', 'sync', '--job-id', '7', '--input', '{"a": 1}', '--env', 'A=1'
    ])
    
    assert result.exit_code == 0
    
    logical_key, spec, jrc = StubLauncher.launched[0]
    assert logical_key == 'conn-1'
    assert spec.application_name == 'sync'
    assert spec.env_vars == {'A': '1'}
    assert spec.input_files['input.json'] == b'{"a": 1}'
    assert tuple(jrc) == ('7', 0)


def test_launch_failure_exit_code(monkeypatch):
    
    stub(monkeypatch, Outcome.failure('sync', exit_code=1, cause='failed'))
    
    result = CliRunner().invoke(tug, ['launch', 'conn-1', '--app', 'sync', '--job-id', '7', '--attempt-id', '2'])
    
    assert result.exit_code == 1
    assert tuple(StubLauncher.launched[0][2]) == ('7', 2)


def test_status(monkeypatch):
    
    stub(monkeypatch)
    
    result = CliRunner().invoke(tug, ['status', '--job-id', '7'])
    
    assert result.exit_code == 0
    assert 'RUNNING' in result.output


def test_reap_error(monkeypatch):
    
    stub(monkeypatch)
    
    result = CliRunner().invoke(tug, ['reap', 'conn-1'])
    
    assert result.exit_code == 1
