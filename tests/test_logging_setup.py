import time
import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_logging():
    """
    各テストの前後で logging を初期化して汚染を防ぐ
    """
    yield
    logging.shutdown()
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)


@pytest.fixture
def tmp_log_dir(tmp_path: Path):
    d = tmp_path / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture
def module(tmp_log_dir, monkeypatch):
    """
    default_log_dir をテンポラリディレクトリへ向けた logging_setup を返す
    :return: logging_setup
    """
    from mview.app import logging_setup
    monkeypatch.setattr(logging_setup, "default_log_dir", lambda app_name: tmp_log_dir)
    return logging_setup


def _read_text(path: Path) -> str:
    """同時書き出しに備え、短いリトライを入れる"""
    for _ in range(10):
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            time.sleep(0.02)
    return path.read_text(encoding="utf-8", errors="replace")


def test_info_level_writes_file(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("mview", root_level=logging.INFO, console_level=logging.INFO)
    logger = logging.getLogger("mview.test")

    logger.debug("debug should NOT appear")
    logger.info("info should appear")
    logger.warning("warning should appear")
    logs.stop()

    log_file = tmp_log_dir / "mview.log"
    assert log_file.exists(), "log file was not created"
    assert logs.log_file == log_file

    text = _read_text(log_file)
    assert "info should appear" in text
    assert "warning should appear" in text
    assert "debug should NOT appear" not in text

    assert " INFO " in text or " WARNING " in text
    assert "mview.test" in text


def test_debug_level_outputs_debug(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("mview", root_level=logging.DEBUG, console_level=logging.DEBUG)
    logger = logging.getLogger("mview.swap")

    logger.debug("debug visible")
    logger.info("info visible")
    logs.stop()

    text = _read_text(tmp_log_dir / "mview.log")
    assert "debug visible" in text
    assert "info visible" in text


def test_queue_listener_flush_on_stop(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("mview", root_level=logging.INFO, console_level=logging.INFO)
    logger = logging.getLogger("mview.bulk")

    for i in range(200):
        logger.info("line %04d", i)

    # stop() で QueueListener がフラッシュして終了すること
    logs.stop()

    text = _read_text(tmp_log_dir / "mview.log")
    assert "line 0000" in text
    assert "line 0199" in text
    assert "line 0200" not in text
    assert text.count("mview.bulk") >= 150


def test_stop_is_idempotent(module, tmp_log_dir):
    logs = module.LogSystem.from_levels("mview")
    logs.stop()
    logs.stop()


def test_rotation_by_small_max_bytes(module, tmp_log_dir, monkeypatch):
    """build_config の maxBytes を小さくしてローテーションを発生させる"""
    monkeypatch.setenv("MVIEW_LOG_BACKUP_COUNT", "2")
    orig_build = module.build_config

    def tiny_build_config(app_name, level=None, console_level="INFO", log_dir=None):
        cfg = orig_build(app_name, level, console_level, log_dir)
        cfg["_file_settings"]["maxBytes"] = 1000
        return cfg

    monkeypatch.setattr(module, "build_config", tiny_build_config)

    logs = module.LogSystem.from_levels("mview", root_level=logging.INFO, console_level=logging.WARNING)
    logger = logging.getLogger("mview.rotate")

    payload = "X" * 180
    for i in range(200):
        logger.info("i=%03d %s", i, payload)
    logs.stop()

    base = tmp_log_dir / "mview.log"
    rot1 = tmp_log_dir / "mview.log.1"
    assert base.exists()
    assert rot1.exists()
    assert not (tmp_log_dir / "mview.log.3").exists()
    assert "i=199" in _read_text(base)


def test_apply_logging_policy_production_uses_configured_console_level(module, tmp_log_dir):
    class Settings:
        run_mode = module.RunMode.PRODUCTION
        logging_level = "WARNING"

    logs = module.LogSystem.from_levels("mview")
    try:
        module.apply_logging_policy(logs, Settings())
        assert logs._console_handler.level == logging.WARNING
        assert logging.getLogger().level == logging.DEBUG
    finally:
        logs.stop()


def test_apply_logging_policy_development_is_verbose(module, tmp_log_dir):
    class Settings:
        run_mode = module.RunMode.DEVELOPMENT
        logging_level = "ERROR"

    logs = module.LogSystem.from_levels("mview")
    try:
        module.apply_logging_policy(logs, Settings())
        assert logs._console_handler.level == logging.DEBUG
    finally:
        logs.stop()
