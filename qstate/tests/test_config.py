# qstate/tests/test_config.py
import logging

import pytest

from qstate.backends import make_state
from qstate.config import get_settings
from qstate.layout import Device, MultiNode, SingleNode, layout_from_dict, layout_to_dict
from qstate.log import get_logger, setup_logging
from qstate.state_cpu import QuantumStateCpu


@pytest.fixture
def settings_env(monkeypatch):
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()

def test_settings_defaults(settings_env):
    for name in ("QSTATE_NUM_THREADS", "QSTATE_NODE_COUNT", "QSTATE_DEVICE_ID", "QSTATE_LOG_LEVEL"):
        settings_env.delenv(name, raising=False)
    s = get_settings()
    assert s.NUM_THREADS is None
    assert s.NODE_COUNT == 1
    assert s.DEVICE_ID == 0

def test_settings_from_env(settings_env):
    settings_env.setenv("QSTATE_NODE_COUNT", "4")
    settings_env.setenv("QSTATE_LOG_LEVEL", "DEBUG")
    s = get_settings()
    assert s.NODE_COUNT == 4
    assert s.LOG_LEVEL == "DEBUG"

def test_make_state_shapes(settings_env):
    settings_env.setenv("QSTATE_NODE_COUNT", "4")
    st = make_state(5)
    assert isinstance(st, QuantumStateCpu) and st.layout == SingleNode()
    multi = make_state(5, use_multi_node=True)
    assert multi.layout == MultiNode(4) and multi.outer_qc == 2
    assert make_state(5, use_multi_node=False).layout == SingleNode()
    assert make_state(3, layout=MultiNode(2)).node_count == 2
    with pytest.raises(ValueError, match="not both"):
        make_state(3, layout=SingleNode(), use_multi_node=True)
    with pytest.raises(ValueError, match="state vectors"):
        make_state(3, is_state_vector=False)

def test_layout_dicts():
    for layout in (SingleNode(), MultiNode(8), Device(1)):
        assert layout_from_dict(layout_to_dict(layout)) == layout
    with pytest.raises(ValueError):
        Device(-1)

def test_loggers():
    assert get_logger("state_cpu").name == "qstate.state_cpu"
    assert get_logger("qstate.bench").name == "qstate.bench"
    logger = setup_logging("DEBUG")
    try:
        assert logger.name == "qstate"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
    finally:
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)

def test_state_logs_allocation(caplog):
    with caplog.at_level(logging.DEBUG, logger="qstate"):
        QuantumStateCpu(3, layout=MultiNode(8))
    assert "too few for 8 nodes" in caplog.text
    assert "allocated 3-qubit state" in caplog.text
