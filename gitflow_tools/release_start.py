import logging

from .releaselib.exceptions import (
    GitStateError,
    PrompterError,
    ReleaseError,
    SnapshotDependencyError,
    VersionParseError,
)
from .releaselib.version_info import VersionInfo


class ReleaseStartManager:
    """Starts a git-flow release: cuts the release branch and moves develop to the next version."""

    def __init__(
        self,
        config,
        git_service,
        maven_service,
        prompter=None,
        interactive=True,
        dry_run=False,
        logger=None,
    ):
        self.config = config
        self.git_service = git_service
        self.maven_service = maven_service
        self.prompter = prompter
        self.interactive = interactive
        self.dry_run = dry_run
        self.logger = logger if logger else logging.getLogger(__name__)

    @property
    def development_branch(self):
        return self.config["development_branch"]

    @property
    def origin(self):
        return self.config["origin"]

    def _commit_message(self, key):
        return self.config["commit_messages"][key]

    def _init_gitflow_config(self):
        """Records the branch layout in the git config, like 'git flow init' does."""
        entries = {
            "gitflow.origin": self.config["origin"],
            "gitflow.branch.master": self.config["production_branch"],
            "gitflow.branch.develop": self.config["development_branch"],
            "gitflow.prefix.feature": self.config["feature_branch_prefix"],
            "gitflow.prefix.release": self.config["release_branch_prefix"],
            "gitflow.prefix.hotfix": self.config["hotfix_branch_prefix"],
            "gitflow.prefix.support": self.config["support_branch_prefix"],
            "gitflow.prefix.versiontag": self.config["version_tag_prefix"],
        }
        if self.dry_run:
            self.logger.info("[DRY-RUN] Skipping git-flow configuration update.")
            return
        for name, value in entries.items():
            self.git_service.set_config(name, value)

    def _check_uncommitted_changes(self):
        self.logger.info("Checking for uncommitted changes.")
        if self.git_service.has_uncommitted_changes():
            raise GitStateError(
                "You have some uncommitted files. Commit or discard local changes in order to proceed."
            )

    def _check_snapshot_dependencies(self):
        self.logger.info("Checking for SNAPSHOT versions in dependencies.")
        snapshots = self.maven_service.find_snapshot_dependencies()
        for artifact in snapshots:
            self.logger.warning(f"{artifact} is a SNAPSHOT dependency.")
        if snapshots:
            raise SnapshotDependencyError(
                "There are SNAPSHOT dependencies in the project, see warnings. "
                "Release them or allow snapshots in order to proceed."
            )

    def _check_no_release_branch(self):
        release_branch = self.git_service.find_branches(self.config["release_branch_prefix"], first_match=True)
        if release_branch.strip():
            raise GitStateError("Release branch already exists. Cannot start release.")

    def _fetch_remote_and_compare(self, branch_name):
        remote_branch = f"{self.origin}/{branch_name}"
        self.logger.info(f"Fetching remote branch '{remote_branch}'.")
        if not self.git_service.fetch_remote(self.origin, branch_name):
            self.logger.warning(f"There were some problems fetching remote branch '{remote_branch}'.")
            return

        self.logger.info(f"Comparing local branch '{branch_name}' with remote '{remote_branch}'.")
        _, behind = self.git_service.compare_with_remote(self.origin, branch_name)
        if behind:
            raise GitStateError(
                f"Remote branch '{remote_branch}' is ahead of the local branch '{branch_name}'. Execute git pull."
            )
        self.logger.info(f"✓ Local branch '{branch_name}' is up to date with '{remote_branch}'.")

    def _default_versions(self, current_version):
        """Returns (default release version, release candidate version)."""
        if self.config["tycho_build"]:
            return current_version, None

        try:
            release = VersionInfo(current_version).release_version_string()
        except VersionParseError as e:
            self.logger.debug(f"Could not parse '{current_version}': {e}")
            raise ReleaseError("Cannot get default project version.") from e

        rc_version = f"{release}-RC" if self.config["use_release_candidate"] else None
        return release, rc_version

    def _choose_version(self, default_version):
        version = None
        if self.interactive:
            try:
                while version is None:
                    version = self.prompter.prompt(f"What is release version? [{default_version}]")
                    if version and not self.git_service.is_valid_branch_name(version):
                        self.logger.info("The name of the branch is not valid.")
                        version = None
            except PrompterError as e:
                self.logger.error(str(e))
        else:
            version = self.config["release_version"]

        if not version or not version.strip():
            version = default_version
        return version

    def _checkout(self, branch_name, create_new=False, start_point=None):
        if self.dry_run:
            target = f"new branch '{branch_name}' from '{start_point}'" if create_new else f"'{branch_name}'"
            self.logger.info(f"[DRY-RUN] Skipping checkout of {target}.")
            return
        self.git_service.checkout(branch_name, create_new=create_new, start_point=start_point)

    def _set_versions_and_commit(self, version, message_key):
        self.maven_service.set_versions(version)
        message = self._commit_message(message_key)
        if self.dry_run:
            self.logger.info(f"[DRY-RUN] Skipping commit '{message}'.")
            return
        self.logger.info(f"Committing changes with message: '{message}'")
        self.git_service.commit_all(message)

    def run(self):
        """Runs the release start flow and returns what it did."""
        self._init_gitflow_config()
        self._check_uncommitted_changes()

        if not self.config["allow_snapshots"]:
            self._check_snapshot_dependencies()

        self._check_no_release_branch()

        if self.config["fetch_remote"]:
            self._fetch_remote_and_compare(self.development_branch)

        # The project version is read from the development branch.
        self._checkout(self.development_branch)
        current_version = self.maven_service.get_current_version()
        self.logger.info(f"Current project version: {current_version}")

        default_version, rc_version = self._default_versions(current_version)
        version = self._choose_version(default_version)
        use_release_candidate = self.config["use_release_candidate"]

        if use_release_candidate:
            self._set_versions_and_commit(rc_version, "release_candidate")

        branch_name = self.config["release_branch_prefix"]
        if not self.config["same_branch_name"]:
            branch_name += version

        self.logger.info(f"Creating release branch '{branch_name}' from '{self.development_branch}'")
        self._checkout(branch_name, create_new=True, start_point=self.development_branch)
        self.logger.info(f"✓ Release branch '{branch_name}' created.")

        if version != current_version and not use_release_candidate:
            self._set_versions_and_commit(version, "release_start")

        next_version = None
        self._checkout(self.development_branch)
        try:
            next_version = str(VersionInfo(current_version).next_version())
        except VersionParseError as e:
            self.logger.error(f"Cannot compute the next development version: {e}")
        if next_version is not None:
            self._set_versions_and_commit(next_version, "update_version")
            self.logger.info(f"✓ '{self.development_branch}' moved to version {next_version}.")

        if self.config["install_project"]:
            self.maven_service.clean_install()

        self.logger.info(f"✓ Release {version} started on branch '{branch_name}'.")
        return {
            "release_branch": branch_name,
            "release_version": version,
            "current_version": current_version,
            "next_version": next_version,
        }
