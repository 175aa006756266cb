import os
from unittest.mock import MagicMock

from lambda_local.gateway.services.config_reloader import ApiSpecReloader, ConfigFileWatcher


def touch(path, mtime):
    os.utime(path, (mtime, mtime))


def test_watcher_detects_mtime_change(api_file):
    watcher = ConfigFileWatcher(str(api_file))
    assert watcher.has_changed() is False  # first check records the mtime

    touch(api_file, os.stat(api_file).st_mtime + 10)
    assert watcher.has_changed() is True
    assert watcher.has_changed() is False


def test_watcher_missing_file(tmp_path):
    assert ConfigFileWatcher(str(tmp_path / "gone.json")).has_changed() is False


def test_check_and_reload_calls_callback(api_file):
    callback = MagicMock(return_value=True)
    reloader = ApiSpecReloader(str(api_file), callback)
    reloader.watcher.update_mtime()

    assert reloader.check_and_reload() is False
    callback.assert_not_called()

    touch(api_file, os.stat(api_file).st_mtime + 10)
    assert reloader.check_and_reload() is True
    callback.assert_called_once()


def test_rejected_definition_reports_false(api_file):
    reloader = ApiSpecReloader(str(api_file), MagicMock(return_value=False))
    reloader.watcher.update_mtime()
    touch(api_file, os.stat(api_file).st_mtime + 10)

    assert reloader.check_and_reload() is False


def test_start_stop_thread(api_file):
    reloader = ApiSpecReloader(str(api_file), MagicMock(return_value=True), interval=0.5)
    reloader.start()
    assert reloader.running
    reloader.stop()
    assert not reloader.running


def test_disabled_reloader_does_not_start(api_file):
    reloader = ApiSpecReloader(str(api_file), MagicMock(), enabled=False)
    reloader.start()
    assert not reloader.running
