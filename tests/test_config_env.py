"""
Tests for layered .env loading.
"""

import os

import pytest

from boardsync.core.config.env import (
    load_layered_env,
    project_env_paths,
    read_env_files,
    user_env_path,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove the variables these tests write."""
    for var in ("BS_TEST_TOKEN", "BS_TEST_ORG", "BS_TEST_ONLY_USER"):
        monkeypatch.delenv(var, raising=False)
    yield
    for var in ("BS_TEST_TOKEN", "BS_TEST_ORG", "BS_TEST_ONLY_USER"):
        os.environ.pop(var, None)


class TestPaths:
    def test_user_env_path_under_xdg(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert user_env_path() == tmp_path / "boardsync" / ".env"

    def test_project_env_paths_order(self, tmp_path):
        """.env.local comes after .env so it wins."""
        assert project_env_paths(tmp_path) == [tmp_path / ".env", tmp_path / ".env.local"]


class TestReadEnvFiles:
    def test_later_files_win(self, tmp_path):
        first = tmp_path / "a.env"
        second = tmp_path / "b.env"
        first.write_text("BS_TEST_TOKEN=one\nBS_TEST_ORG=acme\n")
        second.write_text("BS_TEST_TOKEN=two\n")

        assert read_env_files([first, second]) == {"BS_TEST_TOKEN": "two", "BS_TEST_ORG": "acme"}

    def test_missing_files_skipped(self, tmp_path):
        assert read_env_files([tmp_path / "nope.env"]) == {}

    def test_bare_keys_ignored(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("BS_TEST_TOKEN\nBS_TEST_ORG=acme\n")
        assert read_env_files([path]) == {"BS_TEST_ORG": "acme"}


class TestLoadLayeredEnv:
    """Test precedence: process env > .env.local > .env > user .env."""

    def test_precedence(self, tmp_path, clean_env, monkeypatch):
        user = tmp_path / "user.env"
        user.write_text("BS_TEST_TOKEN=user\nBS_TEST_ONLY_USER=yes\nBS_TEST_ORG=user-org\n")
        (tmp_path / ".env").write_text("BS_TEST_TOKEN=project\nBS_TEST_ORG=project-org\n")
        (tmp_path / ".env.local").write_text("BS_TEST_TOKEN=local\n")
        monkeypatch.setenv("BS_TEST_ORG", "exported")

        applied = load_layered_env(project_dir=tmp_path, user_paths=[user])

        assert os.environ["BS_TEST_TOKEN"] == "local"
        assert os.environ["BS_TEST_ONLY_USER"] == "yes"
        assert os.environ["BS_TEST_ORG"] == "exported"
        assert "BS_TEST_ORG" not in applied
        assert applied["BS_TEST_TOKEN"] == "local"

    def test_no_files(self, tmp_path, clean_env):
        assert load_layered_env(project_dir=tmp_path, user_paths=[]) == {}
