import logging
import re
import shlex
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path

from .exceptions import BuildToolError

POM_FILE = "pom.xml"
PROPERTY_REFERENCE = re.compile(r"\$\{([^}]+)\}")


def _local_name(tag):
    return tag.rsplit("}", 1)[-1]


def _child(element, name):
    """Returns the first direct child with the given local name, ignoring the POM namespace."""
    if element is None:
        return None
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element, name):
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _children(element, name):
    if element is None:
        return []
    return [child for child in element if _local_name(child.tag) == name]


def load_pom(path: Path):
    """Parses a pom.xml and returns its root element."""
    try:
        return ET.parse(path).getroot()
    except FileNotFoundError as e:
        raise BuildToolError(f"Project file not found at: {path}", cause=e)
    except ET.ParseError as e:
        raise BuildToolError(f"XML syntax error in {path}: {e}", cause=e)


def pom_version(root):
    """Returns the project version, inherited from the parent when not declared."""
    version = _child_text(root, "version")
    if not version:
        version = _child_text(_child(root, "parent"), "version")
    return version


def pom_group_id(root):
    """Returns the project groupId, inherited from the parent when not declared."""
    group_id = _child_text(root, "groupId")
    if not group_id:
        group_id = _child_text(_child(root, "parent"), "groupId")
    return group_id


def pom_coordinates(root):
    return f"{pom_group_id(root)}:{_child_text(root, 'artifactId')}:{pom_version(root)}"


def _iter_artifacts(element):
    """Yields <dependency> and <plugin> elements outside the *Management sections."""
    for child in element:
        name = _local_name(child.tag)
        if name in ("dependencyManagement", "pluginManagement"):
            continue
        if name in ("dependency", "plugin"):
            yield child
        yield from _iter_artifacts(child)


def pom_properties(root):
    properties = {}
    properties_element = _child(root, "properties")
    for prop in properties_element if properties_element is not None else []:
        properties[_local_name(prop.tag)] = (prop.text or "").strip()
    version = pom_version(root)
    if version:
        properties.setdefault("project.version", version)
        properties.setdefault("version", version)
    group_id = pom_group_id(root)
    if group_id:
        properties.setdefault("project.groupId", group_id)
    return properties


def resolve_properties(value, properties):
    """Expands ${name} references that the properties map knows about."""
    if not value:
        return value
    return PROPERTY_REFERENCE.sub(lambda m: properties.get(m.group(1), m.group(0)), value)


class MavenService:
    """
    A service class to abstract Maven operations: reading the project model,
    rewriting versions and building the project.
    """

    def __init__(
        self,
        project_root,
        executable="mvn",
        arg_line="",
        tycho_build=False,
        dry_run=False,
        timeout=600,
        logger=None,
    ):
        self.project_root = Path(project_root)
        self.executable = executable
        self.arg_line = arg_line
        self.tycho_build = tycho_build
        self.dry_run = dry_run
        self.timeout = timeout
        self.logger = logger if logger else logging.getLogger(__name__)

    def _pom_path(self, module_dir=None):
        return (module_dir or self.project_root) / POM_FILE

    def run(self, *goals):
        """Runs Maven with the given goals and arguments, followed by the configured arg line."""
        command = [self.executable, *goals]
        if self.arg_line:
            command.extend(shlex.split(self.arg_line))
        cmd_display = " ".join(command)

        if self.dry_run:
            self.logger.info(f"[DRY-RUN] Skipping Maven invocation: {cmd_display}")
            return ""

        self.logger.debug(f"Running: {cmd_display}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                check=True,
                cwd=self.project_root,
                timeout=self.timeout,
            )
            return result.stdout.decode("utf-8", errors="replace").strip()
        except subprocess.CalledProcessError as e:
            output = (e.stdout or b"").decode("utf-8", errors="replace")
            raise BuildToolError(f"Maven command failed: {cmd_display}\n{output}", cause=e)
        except FileNotFoundError as e:
            raise BuildToolError(
                f"Maven command not found: {cmd_display}. Is Maven installed and in your PATH?",
                cause=e,
            )
        except subprocess.TimeoutExpired as e:
            raise BuildToolError(
                f"Maven command timed out after {self.timeout} seconds: {cmd_display}",
                cause=e,
            )

    def get_current_version(self):
        """Reads the project version from pom.xml."""
        pom_path = self._pom_path()
        version = pom_version(load_pom(pom_path))
        if not version:
            raise BuildToolError(f"No project version declared in {pom_path}")
        self.logger.debug(f"Current project version: {version}")
        return version

    def find_snapshot_dependencies(self):
        """
        Returns 'groupId:artifactId:version' for every dependency and plugin
        of the project and its modules that still points at a SNAPSHOT.
        Artifacts built by the reactor itself and *Management declarations are skipped.
        """
        modules = []
        self._collect_modules(self.project_root, modules, set())
        reactor = {pom_coordinates(root) for root in modules}

        snapshots = []
        for root in modules:
            properties = pom_properties(root)
            for artifact in _iter_artifacts(root):
                version = resolve_properties(_child_text(artifact, "version"), properties)
                if not version or not version.upper().endswith("-SNAPSHOT"):
                    continue
                group_id = resolve_properties(_child_text(artifact, "groupId"), properties)
                if not group_id:
                    group_id = "org.apache.maven.plugins" if _local_name(artifact.tag) == "plugin" else None
                artifact_id = resolve_properties(_child_text(artifact, "artifactId"), properties)
                coordinates = f"{group_id}:{artifact_id}:{version}"
                if coordinates not in reactor:
                    snapshots.append(coordinates)
        return snapshots

    def _collect_modules(self, module_dir, modules, visited):
        module_dir = module_dir.resolve()
        if module_dir in visited:
            return
        visited.add(module_dir)

        root = load_pom(self._pom_path(module_dir))
        modules.append(root)
        for module in _children(_child(root, "modules"), "module"):
            if module.text:
                self._collect_modules(module_dir / module.text.strip(), modules, visited)

    def set_versions(self, version: str):
        """Rewrites the version of every module in the reactor."""
        self.logger.info(f"Setting project version to '{version}'")
        if self.tycho_build:
            return self.run(
                "org.eclipse.tycho:tycho-versions-plugin:set-version",
                f"-DnewVersion={version}",
                "-Dtycho.mode=maven",
            )
        return self.run(
            "versions:set",
            f"-DnewVersion={version}",
            "-DgenerateBackupPoms=false",
        )

    def clean_install(self):
        """Builds and installs the project into the local repository."""
        self.logger.info("Building the project: clean install")
        return self.run("clean", "install")
