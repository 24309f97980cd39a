from pathlib import Path

import pytest

from bmpqr.config import Settings, load_settings, setup_logging

KEYS = ("QR_ENGINE", "LOG_LEVEL", "LOGS_DIR", "BMP_HONOR_TOP_DOWN")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no stray .env
    for k in KEYS:
        monkeypatch.setenv(k, "")  # restored on teardown, even if .env sets it
        monkeypatch.delenv(k)


def test_defaults():
    assert load_settings() == Settings()


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("QR_ENGINE", "PyZbar")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("BMP_HONOR_TOP_DOWN", "Yes")
    s = load_settings()
    assert s.qr_engine == "pyzbar"
    assert s.log_level == "DEBUG"
    assert s.logs_dir == tmp_path / "logs"
    assert s.honor_top_down is True


@pytest.mark.parametrize("value", ["0", "false", "off", ""])
def test_top_down_flag_false(monkeypatch, value):
    monkeypatch.setenv("BMP_HONOR_TOP_DOWN", value)
    assert load_settings().honor_top_down is False


def test_dotenv_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("QR_ENGINE=pyzbar\n", encoding="utf-8")
    assert load_settings().qr_engine == "pyzbar"


def test_setup_logging_creates_logs_dir(tmp_path):
    logs = tmp_path / "logs"
    setup_logging(Settings(logs_dir=logs))
    assert logs.is_dir()
