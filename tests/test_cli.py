"""Tests for CLI commands - subscribe, subscriptions, unsubscribe, reset, configure."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from friendsync.cli import cli
from friendsync.core.config import ENV_BACKEND, ENV_PATH
from friendsync.store import SnapshotWatermarkStore, SQLiteWatermarkStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary config directory."""
    config = tmp_path / ".friendsync"
    config.mkdir()
    monkeypatch.setenv("FRIENDSYNC_CONFIG_DIR", str(config))
    monkeypatch.delenv(ENV_BACKEND, raising=False)
    monkeypatch.delenv(ENV_PATH, raising=False)
    return config


def subscribe(runner: CliRunner, *args: str) -> None:
    result = runner.invoke(cli, ["subscribe", *args])
    assert result.exit_code == 0, result.output


class TestSubscribeCommand:
    """Tests for 'friendsync subscribe' command."""

    def test_subscribe_creates_store(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        dest = tmp_path / "incoming"
        result = runner.invoke(cli, ["subscribe", "2", "shareX", "docs/", str(dest)])

        assert result.exit_code == 0, result.output
        assert "Subscribed: peer 2 share 'shareX' sub-path 'docs/'" in result.output
        with SQLiteWatermarkStore(config_dir / "subscriptions.db") as store:
            sub = store.find(2, "shareX", "docs/")
        assert sub is not None
        assert sub.watermark == 0
        assert sub.local_destination == str(dest.resolve())

    def test_subscribe_with_since(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path), "--since", "1000")

        with SQLiteWatermarkStore(config_dir / "subscriptions.db") as store:
            sub = store.find(2, "shareX", "docs/")
        assert sub is not None
        assert sub.watermark == 1000

    def test_subscribe_twice_fails(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))

        result = runner.invoke(cli, ["subscribe", "2", "shareX", "docs/", str(tmp_path)])

        assert result.exit_code == 1
        assert "already subscribed" in result.output

    def test_subscribe_rejects_non_numeric_peer(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        result = runner.invoke(cli, ["subscribe", "bob", "shareX", "docs/", str(tmp_path)])

        assert result.exit_code != 0

    def test_subscribe_snapshot_backend(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        """--backend snapshot writes a JSON snapshot instead of a database."""
        result = runner.invoke(
            cli, ["--backend", "snapshot", "subscribe", "2", "shareX", "docs/", str(tmp_path)],
        )

        assert result.exit_code == 0, result.output
        assert not (config_dir / "subscriptions.db").exists()
        data = json.loads((config_dir / "subscriptions.json").read_text())
        assert data["subscriptions"][0]["share_base"] == "shareX"


class TestSubscriptionsCommand:
    """Tests for 'friendsync subscriptions' command."""

    def test_empty(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["subscriptions"])

        assert result.exit_code == 0
        assert "You have 0 subscription(s)." in result.output

    def test_lists_all(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))
        subscribe(runner, "3", "photos", "2024/", str(tmp_path))

        result = runner.invoke(cli, ["subscriptions"])

        assert result.exit_code == 0
        assert "You have 2 subscription(s)." in result.output
        assert "peer 2 share 'shareX'" in result.output
        assert "peer 3 share 'photos'" in result.output

    def test_filter_by_peer(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))
        subscribe(runner, "3", "photos", "2024/", str(tmp_path))

        result = runner.invoke(cli, ["subscriptions", "--peer", "3"])

        assert result.exit_code == 0
        assert "You have 1 subscription(s)." in result.output
        assert "peer 2" not in result.output

    def test_store_path_option(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        other = tmp_path / "elsewhere" / "subs.db"
        result = runner.invoke(
            cli, ["--store-path", str(other), "subscribe", "2", "s", "d/", str(tmp_path)],
        )

        assert result.exit_code == 0, result.output
        assert other.exists()
        assert not (config_dir / "subscriptions.db").exists()


class TestUnsubscribeCommand:
    """Tests for 'friendsync unsubscribe' command."""

    def test_unsubscribe(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))

        result = runner.invoke(cli, ["unsubscribe", "2", "shareX", "docs/"])

        assert result.exit_code == 0
        assert "Subscription removed." in result.output
        assert "You have 0 subscription(s)." in runner.invoke(cli, ["subscriptions"]).output

    def test_unsubscribe_unknown(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["unsubscribe", "2", "shareX", "docs/"])

        assert result.exit_code == 1
        assert "no subscription" in result.output


class TestResetCommand:
    """Tests for 'friendsync reset' command."""

    def test_reset_with_yes(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))

        result = runner.invoke(cli, ["reset", "--yes"])

        assert result.exit_code == 0
        assert "Removed subscription store" in result.output
        assert not (config_dir / "subscriptions.db").exists()

    def test_reset_asks_for_confirmation(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))

        result = runner.invoke(cli, ["reset"], input="n\n")

        assert result.exit_code != 0
        assert (config_dir / "subscriptions.db").exists()

    def test_reset_nothing(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["reset", "-y"])

        assert result.exit_code == 0
        assert "Nothing to reset." in result.output

    def test_reset_snapshot(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))
        runner.invoke(cli, ["--backend", "snapshot", "subscribe", "2", "s", "d/", str(tmp_path)])

        result = runner.invoke(cli, ["--backend", "snapshot", "reset", "--yes"])

        assert result.exit_code == 0
        assert not (config_dir / "subscriptions.json").exists()
        assert (config_dir / "subscriptions.db").exists()


class TestConfigureCommand:
    """Tests for 'friendsync configure' command."""

    def test_configure_backend(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["configure", "--backend", "snapshot"])

        assert result.exit_code == 0
        assert "Backend: snapshot" in result.output
        assert json.loads((config_dir / "config.json").read_text()) == {"store_backend": "snapshot"}

        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))
        with SnapshotWatermarkStore(config_dir / "subscriptions.json") as store:
            assert store.find(2, "shareX", "docs/") is not None

    def test_configure_store_path(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        target = tmp_path / "data" / "subs.db"
        result = runner.invoke(cli, ["configure", "--store-path", str(target)])

        assert result.exit_code == 0
        assert f"Store: {target.resolve()}" in result.output

        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))
        assert target.exists()

    def test_env_overrides_config(
        self,
        runner: CliRunner,
        config_dir: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        runner.invoke(cli, ["configure", "--backend", "snapshot"])
        monkeypatch.setenv(ENV_BACKEND, "sqlite")

        subscribe(runner, "2", "shareX", "docs/", str(tmp_path))

        assert (config_dir / "subscriptions.db").exists()
        assert not (config_dir / "subscriptions.json").exists()

    def test_invalid_backend_in_config(self, runner: CliRunner, config_dir: Path) -> None:
        (config_dir / "config.json").write_text(json.dumps({"store_backend": "mongo"}))

        result = runner.invoke(cli, ["subscriptions"])

        assert result.exit_code != 0
        assert "Unknown store backend" in result.output

    @pytest.mark.parametrize("content", ["{not json", '["store_backend", "sqlite"]'])
    def test_malformed_config_file(
        self, runner: CliRunner, config_dir: Path, content: str
    ) -> None:
        (config_dir / "config.json").write_text(content)

        result = runner.invoke(cli, ["subscriptions"])

        assert result.exit_code == 1
        assert "config file" in result.output.lower()
        assert not isinstance(result.exception, ValueError)


class TestVersion:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output
