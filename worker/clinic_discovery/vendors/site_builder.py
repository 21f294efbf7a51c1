"""Build and publish the website working tree via its own tooling."""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)

BUILD_TIMEOUT_SECONDS = 120
DEPLOY_TIMEOUT_SECONDS = 120
OUTPUT_TAIL_CHARS = 2000


@dataclass(frozen=True)
class BuildResult:
    ok: bool
    output: str = ""


def _tail(text: str) -> str:
    return (text or "")[-OUTPUT_TAIL_CHARS:]


class SiteBuilder:
    """Runs the site's build check and its git + deploy publish sequence."""

    def __init__(
        self,
        site_root: Path,
        *,
        build_command: str = "npm run build",
        deploy_command: str = "./deploy.sh",
        git_remote: str = "origin",
        git_branch: str = "main",
    ) -> None:
        self.site_root = Path(site_root)
        self.build_command = build_command
        self.deploy_command = deploy_command
        self.git_remote = git_remote
        self.git_branch = git_branch

    def _run(self, argv: Sequence[str], timeout: int) -> BuildResult:
        try:
            completed = subprocess.run(
                list(argv),
                cwd=self.site_root,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return BuildResult(ok=False, output=f"{' '.join(argv)} timed out after {timeout}s")
        except OSError as exc:
            return BuildResult(ok=False, output=f"{' '.join(argv)} could not start: {exc}")
        output = _tail((completed.stdout or "") + (completed.stderr or ""))
        return BuildResult(ok=completed.returncode == 0, output=output)

    def build(self) -> BuildResult:
        result = self._run(shlex.split(self.build_command), BUILD_TIMEOUT_SECONDS)
        if not result.ok:
            logger.warning("Build check failed: %s", result.output[-500:])
        return result

    def publish(self, message: str) -> BuildResult:
        steps: List[List[str]] = [
            ["git", "add", "-A"],
            ["git", "commit", "-m", message],
            ["git", "push", self.git_remote, self.git_branch],
            shlex.split(self.deploy_command),
        ]
        for argv in steps:
            result = self._run(argv, DEPLOY_TIMEOUT_SECONDS)
            if not result.ok:
                logger.error("Publish step %r failed: %s", " ".join(argv), result.output[-500:])
                return result
        logger.info("Published: %s", message)
        return BuildResult(ok=True)
