import os
from pathlib import Path

import pytest
from PySide6.QtCore import QSettings

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture
def tmp_settings(tmp_path: Path):
    """QSettings を INI + 一時フォルダに切り替え、テスト間の汚染を防ぐ。"""
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path))
    s = QSettings("MView.org", "MView")
    s.clear()
    yield s
    s.clear()
