import pytest

from proxyweave.kcpconfig import KCP_SALT, KCPConfig, default_kcp_config, derive_key


@pytest.mark.parametrize(
    "mode, expected",
    [
        ("normal", (0, 40, 2, 1)),
        ("fast", (0, 30, 2, 1)),
        ("fast2", (1, 20, 2, 1)),
        ("fast3", (1, 10, 2, 1)),
    ],
)
def test_init_applies_mode_presets(mode, expected):
    config = KCPConfig(mode=mode, interval=99, resend=7)
    config.init()
    assert (config.nodelay, config.interval, config.resend, config.nc) == expected


def test_init_unknown_mode_keeps_values():
    config = KCPConfig(mode="custom", nodelay=1, interval=99, resend=7, nc=0)
    config.init()
    assert (config.nodelay, config.interval, config.resend, config.nc) == (1, 99, 7, 0)


def test_init_fills_unset_buffers_from_sockbuf():
    config = KCPConfig(sockbuf=4194304)
    config.init()
    assert config.smuxver == 1
    assert config.smuxbuf == 4194304
    assert config.streambuf == 2097152


def test_init_keeps_explicit_buffers():
    config = KCPConfig(sockbuf=4194304, smuxbuf=1024, streambuf=512, smuxver=2)
    config.init()
    assert (config.smuxver, config.smuxbuf, config.streambuf) == (2, 1024, 512)


def test_default_config_values():
    config = default_kcp_config()
    assert config.crypt == "aes"
    assert config.mode == "fast"
    assert config.mtu == 1350
    assert (config.sndwnd, config.rcvwnd) == (1024, 1024)
    assert (config.datashard, config.parityshard) == (10, 3)
    assert config.sockbuf == 4194304
    assert config.streambuf == 2097152
    assert config.keepalive == 10
    assert config.snmpperiod == 60


def test_default_config_is_a_fresh_copy():
    first = default_kcp_config()
    first.mtu = 1
    first.init()
    second = default_kcp_config()
    assert second.mtu == 1350
    assert second.interval == 50


def test_default_config_init_uses_fast_mode():
    config = default_kcp_config()
    config.init()
    assert (config.nodelay, config.interval, config.resend, config.nc) == (0, 30, 2, 1)


def test_derive_key_length_and_determinism():
    first = derive_key("secret")
    assert len(first) == 32
    assert derive_key("secret", KCP_SALT) == first


def test_derive_key_depends_on_key_and_salt():
    base = derive_key("secret", "kcp-go")
    assert derive_key("password", "kcp-go") != base
    assert derive_key("secret", "other") != base