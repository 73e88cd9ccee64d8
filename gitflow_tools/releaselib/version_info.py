import re

from .exceptions import VersionParseError

SNAPSHOT = "SNAPSHOT"

STANDARD_PATTERN = re.compile(
    r"((?:\d+\.)*\d+)"  # digits separated by dots
    r"([-_])?"  # annotation separator
    r"([a-zA-Z]*)"  # annotation: alpha, beta, RC, ...
    r"([-_])?"  # annotation revision separator
    r"(\d*)"  # annotation revision
    r"(?:([-_])?(.*?))?"  # build separator and build specifier
)

ALTERNATE_PATTERN = re.compile(r"SNAPSHOT|[a-zA-Z]+[_-]SNAPSHOT")

TIMESTAMP_SNAPSHOT_PATTERN = re.compile(r"(.*)-([0-9]{8}\.[0-9]{6})-([0-9]+)")


def _null_if_empty(value):
    return value if value else None


def increment_version_string(value: str) -> str:
    """Adds one to a numeric string, keeping any zero padding."""
    incremented = str(int(value) + 1)
    return incremented.zfill(len(value))


class VersionInfo:
    """
    A Maven version string split into its components:
    digits, annotation, annotation revision and build specifier.
    """

    def __init__(self, version: str):
        self.version = version
        self.digits = None
        self.annotation = None
        self.annotation_revision = None
        self.build_specifier = None
        self.annotation_separator = None
        self.annotation_rev_separator = None
        self.build_separator = None

        match = STANDARD_PATTERN.fullmatch(version or "")
        if match:
            self.digits = match.group(1).split(".")
            if match.group(3) != SNAPSHOT:
                self.annotation_separator = match.group(2)
                self.annotation = _null_if_empty(match.group(3))

                if match.group(4) and not match.group(5):
                    # The build separator was picked up as the annotation revision separator
                    self.build_separator = match.group(4)
                    self.build_specifier = _null_if_empty(match.group(7))
                else:
                    self.annotation_rev_separator = match.group(4)
                    self.annotation_revision = _null_if_empty(match.group(5))
                    self.build_separator = match.group(6)
                    self.build_specifier = _null_if_empty(match.group(7))
            else:
                self.build_separator = match.group(2)
                self.build_specifier = match.group(3)
        elif version and ALTERNATE_PATTERN.fullmatch(version):
            self.build_specifier = version
        else:
            raise VersionParseError(f'Unable to parse the version string: "{version}"')

    @classmethod
    def _from_components(cls, template, digits, annotation_revision):
        info = cls.__new__(cls)
        info.digits = digits
        info.annotation = template.annotation
        info.annotation_revision = annotation_revision
        info.build_specifier = template.build_specifier
        info.annotation_separator = template.annotation_separator
        info.annotation_rev_separator = template.annotation_rev_separator
        info.build_separator = template.build_separator
        info.version = info._join()
        return info

    def _join(self):
        parts = []
        if self.digits:
            parts.append(".".join(self.digits))
        if self.annotation:
            parts.append(self.annotation_separator or "")
            parts.append(self.annotation)
        if self.annotation_revision:
            if self.annotation:
                parts.append(self.annotation_rev_separator or "")
            else:
                parts.append(self.annotation_separator or "")
            parts.append(self.annotation_revision)
        if self.build_specifier:
            parts.append(self.build_separator or "")
            parts.append(self.build_specifier)
        return "".join(parts)

    def is_snapshot(self):
        if TIMESTAMP_SNAPSHOT_PATTERN.fullmatch(self.version):
            return True
        return self.version.upper().endswith(SNAPSHOT)

    def release_version_string(self):
        """Returns the version with any snapshot marker removed."""
        base_version = self.version
        match = TIMESTAMP_SNAPSHOT_PATTERN.fullmatch(base_version)
        if match:
            return match.group(1)
        if base_version[-9:].upper() == f"-{SNAPSHOT}":
            return base_version[: -len(SNAPSHOT) - 1]
        if base_version == SNAPSHOT:
            return "1.0"
        return base_version

    def next_version(self):
        """
        Returns the following development version: the annotation revision is
        incremented when it is numeric, otherwise the last digit group is.
        """
        if not self.digits:
            raise VersionParseError(f'Cannot compute the next version of "{self.version}": it has no digits.')

        digits = list(self.digits)
        annotation_revision = self.annotation_revision
        if annotation_revision and annotation_revision.isdigit():
            annotation_revision = increment_version_string(annotation_revision)
        else:
            digits[-1] = increment_version_string(digits[-1])
        return VersionInfo._from_components(self, digits, annotation_revision)

    def __str__(self):
        return self.version

    def __repr__(self):
        return f"VersionInfo({self.version!r})"

    def __eq__(self, other):
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self.version == other.version

    def __hash__(self):
        return hash(self.version)
