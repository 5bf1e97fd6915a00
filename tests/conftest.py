import pytest


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep config files and temp downloads inside the test's tmp_path."""
    config_dir = tmp_path / "config"
    tmp_dir = tmp_path / "tmp"
    monkeypatch.setattr("assetpatcher.config.env.CONFIG_DIR", config_dir)
    monkeypatch.setattr("assetpatcher.config.env.TMP_DIR", tmp_dir)
    from assetpatcher.core.config import config

    config.refresh()
    return {"config": config_dir, "tmp": tmp_dir}
