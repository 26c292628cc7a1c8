import shlex
import types

import pytest

from quickdeploy.config.models import ConnectionMode
from quickdeploy.config.writer import write_config
from quickdeploy.deploy import engines
from quickdeploy.deploy.engines import AnsibleEngine, ReconcileEngine, default_transport_factory
from quickdeploy.deploy.stages import BUILD_NODE_PROCEDURE, DEPLOY_PLAYBOOK, ONE_VM_INVENTORY
from quickdeploy.execution.transport import LocalTransport, SSHTransport
from quickdeploy.observers.dispatcher import EventBus
from quickdeploy.observers.events import PrimitiveFailed, PrimitiveReconciled


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


@pytest.fixture
def artifact(tmp_path, config, secrets):
    return write_config(config, secrets, tmp_path / "vars.yml")


def test_ansible_engine_passes_artifact_as_extra_vars(monkeypatch, tmp_path, artifact):
    seen = {}

    def fake_run(**kwargs):
        seen.update(kwargs)
        return types.SimpleNamespace(rc=0, status="successful")

    monkeypatch.setattr(engines.ansible_runner, "run", fake_run)

    rc = AnsibleEngine(tmp_path).run(ONE_VM_INVENTORY, DEPLOY_PLAYBOOK, artifact)

    assert rc == 0
    assert seen["playbook"] == DEPLOY_PLAYBOOK
    assert seen["inventory"] == str(tmp_path / ONE_VM_INVENTORY)
    assert seen["private_data_dir"] == str(tmp_path)
    assert shlex.split(seen["cmdline"]) == ["-e", f"@{artifact.resolve()}"]
    assert seen["envvars"]["ANSIBLE_ROLES_PATH"] == str(tmp_path / "roles")


def test_ansible_engine_quotes_artifact_path_with_spaces(monkeypatch, tmp_path, config, secrets):
    seen = {}
    spaced = tmp_path / "deploy dir"
    spaced.mkdir()
    artifact = write_config(config, secrets, spaced / "vars.yml")

    def fake_run(**kwargs):
        seen.update(kwargs)
        return types.SimpleNamespace(rc=0, status="successful")

    monkeypatch.setattr(engines.ansible_runner, "run", fake_run)

    AnsibleEngine(tmp_path).run(ONE_VM_INVENTORY, DEPLOY_PLAYBOOK, artifact)

    assert shlex.split(seen["cmdline"]) == ["-e", f"@{artifact.resolve()}"]


def test_ansible_engine_returns_runner_exit_status(monkeypatch, tmp_path, artifact):
    monkeypatch.setattr(
        engines.ansible_runner, "run", lambda **kw: types.SimpleNamespace(rc=2, status="failed")
    )
    assert AnsibleEngine(tmp_path).run(ONE_VM_INVENTORY, DEPLOY_PLAYBOOK, artifact) == 2


def test_reconcile_engine_converges_and_closes_transport(fake_host, artifact):
    cap = Capture()
    seen = []

    def factory(cfg):
        seen.append(cfg.albs_address)
        return fake_host

    eng = ReconcileEngine(factory, bus=EventBus([cap]), run_id="r1")
    assert eng.run(ONE_VM_INVENTORY, BUILD_NODE_PROCEDURE, artifact) == 0

    assert seen == ["localhost"]
    assert fake_host.closed
    assert "alt" in fake_host.users
    done = [e for e in cap.events if isinstance(e, PrimitiveReconciled)]
    assert len(done) == 7 and all(e.run_id == "r1" for e in done)


def test_reconcile_engine_reports_failure_as_exit_status(fake_host, artifact):
    fake_host.fail_on = "useradd"
    cap = Capture()
    eng = ReconcileEngine(lambda cfg: fake_host, bus=EventBus([cap]))

    assert eng.run(ONE_VM_INVENTORY, BUILD_NODE_PROCEDURE, artifact) == 1
    assert fake_host.closed
    assert [e.primitive for e in cap.events if isinstance(e, PrimitiveFailed)] == ["service account"]


def test_reconcile_engine_rejects_unknown_procedure(fake_host, artifact):
    eng = ReconcileEngine(lambda cfg: fake_host)
    with pytest.raises(ValueError):
        eng.run(ONE_VM_INVENTORY, "something_else", artifact)
    assert fake_host.commands == []


def test_transport_follows_connection_mode(config):
    factory = default_transport_factory("deployer")
    assert isinstance(factory(config), LocalTransport)

    remote = config.model_copy(update={"albs_address": "10.0.0.9", "connection_mode": ConnectionMode.REMOTE})
    t = factory(remote)
    assert isinstance(t, SSHTransport)
    assert t.host == "10.0.0.9" and t.username == "deployer"
