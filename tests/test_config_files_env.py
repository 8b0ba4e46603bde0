import textwrap

import pytest

from proxysync.core.config import load_config


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config(files=(), dotenv=False)
    assert cfg.output.format == "table"
    assert cfg.input.pattern == "*.json"
    assert cfg.logging.base_dir == "logs"
    assert len(cfg.run_id) == 12
    assert cfg.run_id == cfg.run_id


def test_file_then_env_then_cli_precedence(tmp_path, monkeypatch):
    (tmp_path / "proxysync.yml").write_text(textwrap.dedent("""
      input:
        dir: "/var/lib/status"
        pattern: "*.dump"
      output:
        format: "json"
      logging:
        console_level: "warning"
    """), encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    monkeypatch.setenv("PSYNC_INPUT__DIR", "/env/status")
    monkeypatch.setenv("PSYNC_LOGGING__BASE_DIR", "/env/logs")

    cfg = load_config(
        {"input": {"dir": "./cli-status"}},
        files=(str(tmp_path / "proxysync.yml"),),
        dotenv=False,
    )

    assert cfg.input.dir == "./cli-status"          # CLI wins
    assert cfg.logging.base_dir == "/env/logs"      # from env
    assert cfg.input.pattern == "*.dump"            # from file
    assert cfg.output.format == "json"              # from file
    assert cfg.logging.console_level == "WARNING"   # normalized


def test_env_interpolation(tmp_path, monkeypatch):
    (tmp_path / "proxysync.yml").write_text(textwrap.dedent("""
      input:
        dir: "${STATUS_DUMPS}"
    """), encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STATUS_DUMPS", "/data/dumps")
    cfg = load_config(files=(str(tmp_path / "proxysync.yml"),), dotenv=False)
    assert cfg.input.dir == "/data/dumps"


def test_dotenv_file_does_not_override_real_env(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text(
        "PSYNC_OUTPUT__FORMAT=json\nPSYNC_INPUT__PATTERN=*.from-dotenv\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    # register both keys so monkeypatch removes whatever .env loading leaves behind
    monkeypatch.setenv("PSYNC_OUTPUT__FORMAT", "placeholder")
    monkeypatch.delenv("PSYNC_OUTPUT__FORMAT")
    monkeypatch.setenv("PSYNC_INPUT__PATTERN", "*.real")

    cfg = load_config(files=())
    assert cfg.output.format == "json"
    assert cfg.input.pattern == "*.real"


def test_invalid_output_format(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ValueError) as exc:
        load_config({"output": {"format": "xml"}}, files=(), dotenv=False)
    assert "output.format" in str(exc.value)


def test_non_mapping_yaml(tmp_path, monkeypatch):
    (tmp_path / "proxysync.yml").write_text("- a\n- b\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ValueError):
        load_config(files=(str(tmp_path / "proxysync.yml"),), dotenv=False)
