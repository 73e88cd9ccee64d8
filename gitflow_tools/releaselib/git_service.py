import subprocess
from pathlib import Path
from .exceptions import GitServiceError

class GitService:
    """
    A service class to abstract Git command operations.
    This makes the release logic testable by allowing this service to be mocked.
    """
    def __init__(self, cwd=None, timeout=60):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def _run_process(self, command, check):
        command_str = [str(c) if isinstance(c, Path) else c for c in command]
        cmd_display = ' '.join(command_str)
        try:
            return subprocess.run(
                command_str,
                capture_output=True,
                check=check,
                cwd=self.cwd,
                timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            raise GitServiceError(f"Git command failed: {cmd_display}\n{e.stderr.decode('utf-8', errors='replace')}", cause=e)
        except FileNotFoundError as e:
            raise GitServiceError(f"Git command not found: {cmd_display}. Is Git installed and in your PATH?", cause=e)
        except subprocess.TimeoutExpired as e:
            raise GitServiceError(f"Git command timed out after {self.timeout} seconds: {cmd_display}", cause=e)

    def run(self, command):
        """
        Runs a Git command and returns its stripped string output.
        """
        result = self._run_process(command, check=True)
        return result.stdout.decode('utf-8', errors='replace').strip()

    def run_exit_code(self, command):
        """Runs a Git command and returns its exit code without raising on failure."""
        return self._run_process(command, check=False).returncode

    def get_current_branch(self):
        """Returns the current active branch name."""
        return self.run(['git', 'rev-parse', '--abbrev-ref', 'HEAD'])

    def set_config(self, name: str, value: str):
        """Writes a git config entry. An empty value is written as is. Failures are ignored."""
        value = value or ""
        return self.run_exit_code(['git', 'config', name, value])

    def _diff_exit_code(self, command):
        returncode = self.run_exit_code(command)
        if returncode not in (0, 1):
            raise GitServiceError(f"Git command failed with exit code {returncode}: {' '.join(command)}")
        return returncode

    def has_uncommitted_changes(self):
        """
        Checks the working tree and the index for changes.
        Exit code 1 of either diff means there is something uncommitted.
        """
        if self._diff_exit_code(['git', 'diff', '--no-ext-diff', '--ignore-submodules', '--quiet', '--exit-code']) == 1:
            return True
        return self._diff_exit_code(['git', 'diff-index', '--cached', '--quiet', '--ignore-submodules', 'HEAD', '--']) == 1

    def find_branches(self, prefix: str, first_match: bool = False):
        """Returns the short names of local branches starting with prefix, one per line."""
        command = ['git', 'for-each-ref']
        if first_match:
            command.append('--count=1')
        command.extend(['--format=%(refname:short)', f'refs/heads/{prefix}*'])
        return self.run(command)

    def fetch_remote(self, origin: str, branch_name: str):
        """Fetches a single branch from the remote. Returns False if the fetch failed."""
        return self.run_exit_code(['git', 'fetch', '--quiet', origin, branch_name]) == 0

    def compare_with_remote(self, origin: str, branch_name: str):
        """
        Returns (ahead, behind): commits only on the local branch and
        commits only on its remote counterpart.
        """
        output = self.run(['git', 'rev-list', '--left-right', '--count', f'{branch_name}...{origin}/{branch_name}'])
        counts = output.split()
        if len(counts) != 2:
            raise GitServiceError(f"Unexpected output from git rev-list: '{output}'")
        return int(counts[0]), int(counts[1])

    def is_valid_branch_name(self, branch_name: str):
        """Checks the name with 'git check-ref-format'."""
        return self.run_exit_code(['git', 'check-ref-format', '--allow-onelevel', branch_name]) == 0

    def checkout(self, branch_name: str, create_new: bool = False, start_point: str = None):
        """Checks out a Git branch, optionally creating it from a start point."""
        command = ['git', 'checkout']
        if create_new:
            command.append('-b')
        command.append(branch_name)
        if start_point:
            command.append(start_point)
        return self.run(command)

    def commit_all(self, message: str):
        """Commits all tracked modifications."""
        return self.run(['git', 'commit', '-a', '-m', message])
