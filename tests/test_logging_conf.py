from __future__ import annotations

import logging
from pathlib import Path

from newsgate.logging_conf import (
    available_provider_logs,
    log_dir,
    main_log_path,
    provider_log_path,
    provider_logger,
    tail_log,
)


def test_log_paths_follow_newsgate_home(tmp_path: Path) -> None:
    assert log_dir() == tmp_path.resolve() / "logs"
    assert main_log_path().name == "newsgate.log"
    assert provider_log_path("DD NEWS") == log_dir() / "providers" / "dd-news.log"


def test_provider_logger_attaches_one_file_handler(tmp_path: Path) -> None:
    provider_logger("Wire Desk")
    provider_logger("Wire Desk")
    assert provider_log_path("Wire Desk").exists()
    assert provider_log_path("Wire Desk") in list(available_provider_logs())
    handlers = logging.getLogger("newsgate.provider.wire-desk").handlers
    assert [h.baseFilename for h in handlers] == [str(provider_log_path("Wire Desk"))]


def test_tail_log_returns_last_lines(tmp_path: Path) -> None:
    path = tmp_path / "sample.log"
    path.write_text("".join(f"line {index}\n" for index in range(10)), encoding="utf-8")
    assert tail_log(path, 3) == ["line 7\n", "line 8\n", "line 9\n"]
    assert tail_log(tmp_path / "missing.log") == []
