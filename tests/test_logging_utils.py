import logging

import pytest

from proxyweave.logging_utils import NopLogger, StdLogger


def test_log_joins_arguments_with_spaces(caplog):
    caplog.set_level(logging.INFO, logger="proxyweave")
    StdLogger().log("[kcp]", "accept:", 42)
    assert [record.getMessage() for record in caplog.records] == ["[kcp] accept: 42"]


def test_logf_formats_arguments(caplog):
    caplog.set_level(logging.INFO, logger="proxyweave")
    StdLogger().logf("[http] %s -> %s", "a", "b")
    assert caplog.records[-1].getMessage() == "[http] a -> b"
    assert caplog.records[-1].levelno == logging.INFO


def test_logf_without_arguments_keeps_percent(caplog):
    caplog.set_level(logging.INFO, logger="proxyweave")
    StdLogger().logf("100%")
    assert caplog.records[-1].getMessage() == "100%"


def test_logf_bad_format_raises():
    with pytest.raises(TypeError):
        StdLogger().logf("%d", "x")


def test_custom_logger_is_used(caplog):
    custom = logging.getLogger("proxyweave.custom")
    caplog.set_level(logging.INFO, logger="proxyweave.custom")
    StdLogger(custom).log("hello")
    assert caplog.records[-1].name == "proxyweave.custom"


def test_nop_logger_emits_nothing(caplog):
    caplog.set_level(logging.DEBUG)
    logger = NopLogger()
    logger.log("a", "b")
    logger.logf("%s", "c")
    assert caplog.records == []