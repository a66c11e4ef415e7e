"""
Package manager collaborator and manifest helpers.
"""

import json
import logging

from .config import PackageManagerConfig
from .confirm import Confirmer
from .errors import MalformedVersionError, PackageManagerError
from .models import RepositoryContext
from .utils import run_command

logger = logging.getLogger(__name__)


def manifest_version(content: str, source: str = "manifest") -> str:
    """
    Extract the ``version`` field from a JSON manifest.

    Raises:
        MalformedVersionError: If the manifest is not JSON or has no version.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedVersionError(f"Could not parse {source}: {e}") from e

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version.strip():
        raise MalformedVersionError(f"No version field found in {source}")
    return version.strip()


class PackageManager:
    """Runs dependency installs and version bumps in the working copy."""

    def __init__(self, config: PackageManagerConfig, confirmer: Confirmer, manifest_file: str = "package.json"):
        self.config = config
        self.confirmer = confirmer
        self.manifest_file = manifest_file

    def _run(self, ctx: RepositoryContext, args: list[str], description: str) -> None:
        command = " ".join(args)
        self.confirmer.require(description, command)
        result = run_command(
            args,
            cwd=ctx.path,
            timeout=self.config.timeout,
            error_cls=PackageManagerError,
        )
        logger.debug("%s output: %s", command, result.stdout.strip())

    def install(self, ctx: RepositoryContext) -> None:
        """Refresh the lock file and installed packages."""
        print("📦 Updating dependencies...")
        self._run(
            ctx, list(self.config.install_command),
            "This will update your local lock file and installed packages.",
        )
        print("✅ Local dependencies updated.")

    def bump_version(self, ctx: RepositoryContext, bump_type: str) -> None:
        """Bump the manifest version (patch, minor or major)."""
        args = [part.replace("{bump}", bump_type) for part in self.config.bump_command]
        print(f"🔖 Bumping version using \"{' '.join(args)}\"...")
        self._run(ctx, args, f"This will bump the version using {' '.join(args)}")
        print("✅ Version bump performed.")

    def local_version(self, ctx: RepositoryContext) -> str:
        """Read the version from the manifest in the working copy."""
        path = ctx.path / self.manifest_file
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise MalformedVersionError(f"Could not read {path}: {e}") from e
        return manifest_version(content, source=str(path))
