"""
Built artifact resolution from package-manager metadata.

After a successful package-managed build the executable lives under the
workspace's target directory, which only the package manager knows for
sure (it can be redirected by config or environment). The resolver asks
`cargo metadata` for it and derives the binary path from the selected
profile and binary name.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from ..validation import ArtifactNotFound
from .commands import format_argv, run_command

logger = logging.getLogger(__name__)


def exe_name(bin_name: str) -> str:
    """Platform executable file name for a binary target."""
    return f"{bin_name}.exe" if os.name == "nt" else bin_name


def exe_path(target_dir: Path, release: bool, bin_name: str) -> Path:
    """Location of a built binary inside a target directory."""
    profile = "release" if release else "debug"
    return Path(target_dir) / profile / exe_name(bin_name)


class CargoArtifactResolver:
    """
    Locates the executable produced by a package-managed build.

    Args:
        manifest_path: Manifest to query, or None for the one in working_dir
        bin_name: Explicit binary target name
        package: Package name, used as binary name when bin_name is unset
        release: Whether the build used the release profile
        working_dir: Directory the build ran in
    """

    def __init__(self, manifest_path: Optional[Path] = None, bin_name: Optional[str] = None,
                 package: Optional[str] = None, release: bool = False,
                 working_dir: Optional[Path] = None):
        self.manifest_path = manifest_path
        self.bin_name = bin_name
        self.package = package
        self.release = release
        self.working_dir = working_dir or Path.cwd()

    def metadata_argv(self):
        argv = ["cargo", "metadata", "--format-version", "1", "--no-deps"]
        if self.manifest_path is not None:
            argv += ["--manifest-path", str(self.manifest_path)]
        return argv

    def target_directory(self) -> Path:
        """
        Query the target directory.

        Raises:
            ArtifactNotFound: If the metadata command fails or its output is unusable
        """
        argv = self.metadata_argv()
        return_code, stdout, stderr = run_command(argv, cwd=self.working_dir)
        if return_code != 0:
            raise ArtifactNotFound(
                f"'{format_argv(argv)}' exited with {return_code}: {stderr.strip()[:200]}"
            )
        try:
            return Path(json.loads(stdout)["target_directory"])
        except (ValueError, KeyError, TypeError) as e:
            raise ArtifactNotFound(f"unreadable package metadata: {e}") from e

    def resolve_bin_name(self) -> str:
        """Binary name: explicit bin, else package, else the working directory's name."""
        if self.bin_name:
            return self.bin_name
        if self.package:
            return self.package
        name = Path(self.working_dir).resolve().name
        if not name:
            raise ArtifactNotFound("cannot infer binary name; specify --bin or config bin")
        return name

    def resolve(self) -> Path:
        """
        Return the absolute path of the built executable.

        Raises:
            ArtifactNotFound: If it cannot be determined or does not exist
        """
        path = exe_path(self.target_directory(), self.release, self.resolve_bin_name())
        if not path.is_file():
            raise ArtifactNotFound(f"{path} does not exist")
        logger.debug(f"Resolved build artifact: {path}")
        return path.resolve()
