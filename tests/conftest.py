import pytest

import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    # mock model responses and keep history/log files out of the repo
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(config, "HISTORY_DB", str(tmp_path / "history.db"))
    monkeypatch.setattr(config, "RAW_LOG", str(tmp_path / "llm_raw_logs.txt"))
    return tmp_path
