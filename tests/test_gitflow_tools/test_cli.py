import logging
import os
import sys

import pytest

# Project root
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))

# Always put the project root at the beginning of sys.path
if PROJECT_ROOT in sys.path:
    sys.path.remove(PROJECT_ROOT)
sys.path.insert(0, PROJECT_ROOT)

from gitflow_tools.cli import ColoredFormatter, main, setup_logging
from gitflow_tools.releaselib.config import DEFAULT_CONFIG
from gitflow_tools.releaselib.exceptions import ConfigurationError, GitStateError


@pytest.fixture(autouse=True)
def mock_env(mocker):
    """Auto-mock configuration and services for all tests in this module."""
    mocker.patch("gitflow_tools.cli.setup_logging", return_value=logging.getLogger("test_logger"))
    mocker.patch("gitflow_tools.cli.GitService")
    mocker.patch("gitflow_tools.cli.MavenService")
    mocker.patch("sys.stdin").isatty.return_value = True


@pytest.fixture
def mock_manager_class(mocker):
    manager_class = mocker.patch("gitflow_tools.cli.ReleaseStartManager")
    manager_class.return_value.run.return_value = {"release_branch": "release/1.0"}
    return manager_class


class TestMainCLI:
    def test_default_run(self, mocker, mock_manager_class):
        mock_load_config = mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))

        main([])

        mock_load_config.assert_called_once()
        mock_manager_class.return_value.run.assert_called_once()
        kwargs = mock_manager_class.call_args.kwargs
        assert kwargs["interactive"] is True
        assert kwargs["dry_run"] is False

    def test_flags_become_config_overrides(self, mocker, mock_manager_class):
        mock_load_config = mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))

        main(["--release-version", "2.0.0", "--same-branch-name", "--no-fetch-remote", "--install-project"])

        overrides = mock_load_config.call_args.kwargs["overrides"]
        assert overrides["release_version"] == "2.0.0"
        assert overrides["same_branch_name"] is True
        assert overrides["fetch_remote"] is False
        assert overrides["install_project"] is True
        assert overrides["allow_snapshots"] is None
        assert overrides["tycho_build"] is None

    def test_batch_mode_is_not_interactive(self, mocker, mock_manager_class):
        mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))
        main(["-B"])
        assert mock_manager_class.call_args.kwargs["interactive"] is False

    def test_no_tty_is_not_interactive(self, mocker, mock_manager_class):
        mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))
        mocker.patch("sys.stdin").isatty.return_value = False
        main([])
        assert mock_manager_class.call_args.kwargs["interactive"] is False

    def test_services_built_from_config(self, mocker, mock_manager_class):
        config = dict(DEFAULT_CONFIG, mvn_executable="./mvnw", arg_line="-Pci", tycho_build=True)
        mocker.patch("gitflow_tools.cli.load_config", return_value=config)
        mock_maven_service = mocker.patch("gitflow_tools.cli.MavenService")
        mock_git_service = mocker.patch("gitflow_tools.cli.GitService")

        main(["--dry-run", "--git-timeout", "5", "--mvn-timeout", "50"])

        assert mock_git_service.call_args.kwargs["timeout"] == 5
        kwargs = mock_maven_service.call_args.kwargs
        assert kwargs["executable"] == "./mvnw"
        assert kwargs["arg_line"] == "-Pci"
        assert kwargs["tycho_build"] is True
        assert kwargs["dry_run"] is True
        assert kwargs["timeout"] == 50

    def test_invalid_argument(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["--git-timeout", "soon"])
        assert excinfo.value.code == 2

    def test_main_handles_release_error(self, mocker, mock_manager_class, caplog):
        mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))
        mock_manager_class.return_value.run.side_effect = GitStateError("Release branch already exists.")

        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
        assert "[RELEASE FAILED] Release branch already exists." in caplog.text

    def test_main_handles_configuration_error(self, mocker, mock_manager_class):
        mocker.patch("gitflow_tools.cli.load_config", side_effect=ConfigurationError("bad config"))
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
        mock_manager_class.assert_not_called()

    def test_main_handles_unexpected_error(self, mocker, mock_manager_class, caplog):
        mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))
        mock_manager_class.return_value.run.side_effect = RuntimeError("Unexpected boom!")

        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
        assert "[UNEXPECTED ERROR] An unhandled exception occurred: Unexpected boom!" in caplog.text


class TestLogging:
    @pytest.fixture(autouse=True)
    def unpatch_logging(self, mocker):
        mocker.stopall()

    def test_setup_logging_levels(self):
        logger = logging.getLogger("gitflow_tools")
        logger.handlers = []
        handler = setup_logging(verbose=True).handlers[0]
        assert handler.level == logging.INFO
        logger.handlers = []
        handler = setup_logging(debug=True).handlers[0]
        assert handler.level == logging.DEBUG
        logger.handlers = []
        handler = setup_logging().handlers[0]
        assert handler.level == logging.WARNING
        assert isinstance(handler.formatter, ColoredFormatter)
        logger.handlers = []

    def test_colored_formatter(self):
        formatter = ColoredFormatter("%(message)s")

        dry_run_record = logging.LogRecord("test", logging.INFO, "", 0, "[DRY-RUN] test", None, None)
        assert "\033[96m" in formatter.format(dry_run_record)

        success_record = logging.LogRecord("test", logging.INFO, "", 0, "✓ Success", None, None)
        assert "\033[92m" in formatter.format(success_record)

        manual_record = logging.LogRecord("test", logging.INFO, "", 0, "ACTION REQUIRED: finish", None, None)
        assert "\033[94m" in formatter.format(manual_record)

        warning_record = logging.LogRecord("test", logging.WARNING, "", 0, "lib is a SNAPSHOT dependency.", None, None)
        assert "\033[93m" in formatter.format(warning_record)

        error_record = logging.LogRecord("test", logging.ERROR, "", 0, "Error message", None, None)
        assert "\033[91m" in formatter.format(error_record)


class TestConfigOption:
    def test_config_defaults_to_none(self, mocker, mock_manager_class):
        mock_load_config = mocker.patch("gitflow_tools.cli.load_config", return_value=dict(DEFAULT_CONFIG))
        main([])
        assert mock_load_config.call_args.args[0] is None

    def test_missing_explicit_config_fails(self, tmp_path, mock_manager_class):
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(tmp_path / "nested" / "gitflow.yaml")])
        assert excinfo.value.code == 1
        mock_manager_class.assert_not_called()
