import argparse
import logging
import os
import sys
from pathlib import Path

from .release_start import ReleaseStartManager
from .releaselib.config import CONFIG_FILE, load_config
from .releaselib.exceptions import ReleaseError
from .releaselib.git_service import GitService
from .releaselib.maven_service import MavenService
from .releaselib.prompter import Prompter

# --- Logging Setup ---
LOG_FORMAT = "%(levelname)s: %(message)s"
COLOR_CODES = {
    "DEBUG": "\033[90m",
    "INFO": "\033[0m",
    "WARNING": "\033[93m",
    "ERROR": "\033[91m",
    "CRITICAL": "\033[91m",
    "DRY_RUN": "\033[96m",
    "SUCCESS": "\033[92m",
    "MANUAL": "\033[94m",
}
RESET_CODE = "\033[0m"


class ColoredFormatter(logging.Formatter):
    def format(self, record):
        log_message = super().format(record)
        level_name = record.levelname

        if "DRY-RUN" in log_message:
            level_name = "DRY_RUN"
        elif "ACTION REQUIRED" in log_message:
            level_name = "MANUAL"
        elif "✓" in log_message:
            level_name = "SUCCESS"

        color_code = COLOR_CODES.get(level_name, RESET_CODE)
        return f"{color_code}{log_message}{RESET_CODE}"


def setup_logging(verbose=False, debug=False):
    """Routes the package loggers to a colored stdout handler."""
    logger = logging.getLogger("gitflow_tools")
    logger.setLevel(logging.DEBUG)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT))
        logger.addHandler(handler)

    handler = logger.handlers[0]
    handler.setLevel(
        logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    )
    logger.propagate = False
    return logger


logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Start a git-flow release: create the release branch and bump versions."
    )
    parser.add_argument(
        "--config", type=Path, help=f"Path to the configuration file (default: ./{CONFIG_FILE}, optional)."
    )
    parser.add_argument(
        "-B", "--batch-mode", action="store_true", help="Run non-interactively."
    )
    parser.add_argument(
        "--release-version", help="Release version to use instead of the default in batch mode."
    )
    parser.add_argument(
        "--same-branch-name",
        action="store_true",
        default=None,
        help="Use the release branch prefix as the branch name, without the version.",
    )
    parser.add_argument(
        "--use-release-candidate",
        action="store_true",
        default=None,
        help="Commit a '-RC' version on the development branch before branching.",
    )
    parser.add_argument(
        "--allow-snapshots",
        action="store_true",
        default=None,
        help="Do not fail on SNAPSHOT dependencies.",
    )
    parser.add_argument(
        "--no-fetch-remote",
        dest="fetch_remote",
        action="store_false",
        default=None,
        help="Do not fetch and compare the development branch with the remote.",
    )
    parser.add_argument(
        "--install-project",
        action="store_true",
        default=None,
        help="Run 'mvn clean install' after the versions are updated.",
    )
    parser.add_argument(
        "--tycho-build",
        action="store_true",
        default=None,
        help="Use the Tycho versions plugin and keep the current version as default.",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Perform a trial run."
    )
    parser.add_argument(
        "--git-timeout", type=int, default=60, help="Timeout for Git commands."
    )
    parser.add_argument(
        "--mvn-timeout", type=int, default=600, help="Timeout for Maven commands."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output."
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug output."
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    global logger
    logger = setup_logging(args.verbose, args.debug)

    try:
        if args.dry_run:
            logger.info("--- Starting in DRY-RUN mode. No changes will be made. ---")

        config = load_config(
            args.config,
            overrides={
                "release_version": args.release_version,
                "same_branch_name": args.same_branch_name,
                "use_release_candidate": args.use_release_candidate,
                "allow_snapshots": args.allow_snapshots,
                "fetch_remote": args.fetch_remote,
                "install_project": args.install_project,
                "tycho_build": args.tycho_build,
            },
        )

        project_root = Path(os.getcwd())
        git_service = GitService(cwd=project_root, timeout=args.git_timeout)
        maven_service = MavenService(
            project_root,
            executable=config["mvn_executable"],
            arg_line=config["arg_line"],
            tycho_build=config["tycho_build"],
            dry_run=args.dry_run,
            timeout=args.mvn_timeout,
            logger=logger,
        )

        interactive = not args.batch_mode and sys.stdin.isatty()
        manager = ReleaseStartManager(
            config,
            git_service=git_service,
            maven_service=maven_service,
            prompter=Prompter(),
            interactive=interactive,
            dry_run=args.dry_run,
            logger=logger,
        )
        result = manager.run()
        logger.info(f"ACTION REQUIRED: Stabilize '{result['release_branch']}', then finish the release.")

    except ReleaseError as e:
        logger.critical(f"[RELEASE FAILED] {e}")
        sys.exit(1)
    except Exception as e:
        logger.critical(
            f"[UNEXPECTED ERROR] An unhandled exception occurred: {e}", exc_info=True
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
