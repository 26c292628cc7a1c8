import logging

from quickdeploy.logging.log import init_logging
from quickdeploy.observers.console import ConsoleObserver
from quickdeploy.observers.dispatcher import EventBus
from quickdeploy.observers.events import StageStarted, new_ctx
from quickdeploy.observers.logger import LoggerObserver


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


class Broken:
    def notify(self, ev): raise RuntimeError("observer down")


def _event():
    return StageStarted(index=1, name="prepare", procedure="build_node_environment", **new_ctx("localhost", "r1"))


def test_broken_observer_does_not_stop_others():
    cap = Capture()
    EventBus([Broken(), cap]).emit(_event())
    assert len(cap.events) == 1


def test_new_ctx_reuses_run_id():
    ctx = new_ctx("10.0.0.5", run_id="abc")
    assert ctx["run_id"] == "abc"
    assert ctx["target"] == "10.0.0.5"
    assert ctx["ts"].endswith("Z")
    assert new_ctx("x")["run_id"] != new_ctx("x")["run_id"]


def test_console_observer_prints_event(capsys):
    ConsoleObserver().notify(_event())
    out = capsys.readouterr().out
    assert "StageStarted target=localhost" in out
    assert "name=prepare" in out


def test_logger_observer_and_log_file(tmp_path):
    logger, run_id, log_path = init_logging(base_dir=tmp_path, name="quickdeploy-test")
    try:
        LoggerObserver(logger).notify(_event())
        for h in logger.handlers:
            h.flush()
        text = log_path.read_text()
        assert f"run {run_id} started" in text
        assert "[EVENT] StageStarted" in text
        assert log_path.parent == tmp_path
        assert logger.level == logging.DEBUG
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)


def test_old_run_logs_are_pruned(tmp_path):
    for i in range(5):
        (tmp_path / f"quickdeploy-prune-2026010{i}-x.log").write_text("old\n")
    logger, _, log_path = init_logging(base_dir=tmp_path, name="quickdeploy-prune", keep=3)
    try:
        remaining = sorted(tmp_path.glob("quickdeploy-prune-*.log"))
        assert len(remaining) == 3
        assert log_path in remaining
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)


def test_keep_one_leaves_only_current_run_log(tmp_path):
    for i in range(3):
        (tmp_path / f"quickdeploy-single-2026010{i}-x.log").write_text("old\n")
    logger, _, log_path = init_logging(base_dir=tmp_path, name="quickdeploy-single", keep=1)
    try:
        assert list(tmp_path.glob("quickdeploy-single-*.log")) == [log_path]
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)
