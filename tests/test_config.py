"""Tests for connection configuration."""

from hg_cmdserver.config import HG_ARGS, ConnectionConfig


def test_command_line_uses_configured_hg():
    config = ConnectionConfig(hg="/opt/hg/bin/hg")
    assert config.command_line() == ["/opt/hg/bin/hg", "serve", "--cmdserver", "pipe"]


def test_command_line_default_hg(monkeypatch):
    monkeypatch.setattr("hg_cmdserver.config.shutil.which", lambda name: None)
    assert ConnectionConfig().command_line() == ["hg", *HG_ARGS]


def test_environment_forces_plain_utf8(monkeypatch):
    monkeypatch.setenv("HGENCODING", "latin-1")
    monkeypatch.setenv("HOME_MARKER", "kept")
    env = ConnectionConfig(extra_env={"HGPLAIN": "0", "HGUSER": "test"}).environment()
    assert env["HGPLAIN"] == "True"
    assert env["HGENCODING"] == "UTF-8"
    assert env["HGENCODINGMODE"] == "strict"
    assert env["HGUSER"] == "test"
    assert env["HOME_MARKER"] == "kept"


def test_from_env(monkeypatch):
    monkeypatch.setenv("HG_CMDSERVER_HG", "/usr/local/bin/hg")
    monkeypatch.setenv("HG_CMDSERVER_CWD", "/srv/repo")
    config = ConnectionConfig.from_env()
    assert config.hg == "/usr/local/bin/hg"
    assert config.cwd == "/srv/repo"


def test_from_env_unset(monkeypatch):
    monkeypatch.delenv("HG_CMDSERVER_HG", raising=False)
    monkeypatch.delenv("HG_CMDSERVER_CWD", raising=False)
    assert ConnectionConfig.from_env() == ConnectionConfig()


def test_with_methods_return_new_config(tmp_path):
    base = ConnectionConfig()
    config = base.with_hg("/bin/hg").with_cwd(tmp_path)
    assert config.hg == "/bin/hg"
    assert config.cwd == str(tmp_path)
    assert base.hg is None and base.cwd is None
