"""Fix engine - Preview and safely apply config_replace remediations.

Implements the safety model:
1. Validate the payload (closed set of fix kinds)
2. Back up the pre-fix content before any mutation
3. Atomic write (temp file in the same directory, then rename)
4. Restart the container and verify it once
5. Roll back to the in-memory pre-fix content if verification fails

Preview never writes. When the target file is missing, preview synthesizes
the baseline in memory; only ``apply`` or an explicit ``materialize`` puts
synthesized content on disk.
"""

import logging
import os
import shutil
import tempfile
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

from dockwarden.config import Settings
from dockwarden.connector.docker_runtime import ContainerRuntime, DockerCLIRuntime
from dockwarden.connector.local import CommandRunner
from dockwarden.engine.diffing import compute_diff
from dockwarden.engine.side_effects import describe_side_effects
from dockwarden.engine.synthesis import ConfigSynthesizer
from dockwarden.errors import FixError, FixIOError, NotFoundError, RestartError, ValidationError
from dockwarden.model.finding import Finding, FixKind
from dockwarden.model.results import DiffPreview, FixResult

logger = logging.getLogger(__name__)


# Applies against the same file are serialized within this process.
_path_locks: dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


@contextmanager
def path_lock(path: Path) -> Iterator[None]:
    key = str(path.resolve())
    with _path_locks_guard:
        lock = _path_locks.setdefault(key, threading.Lock())
    with lock:
        yield


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def backup_name(target: Path, finding_id: str, when: datetime) -> str:
    """``<stem>_<timestamp>_finding-<id><suffix>`` with a filename-safe timestamp."""
    stamp = when.isoformat().replace(":", "-").replace(".", "-")
    return f"{target.stem}_{stamp}_finding-{finding_id}{target.suffix}"


def atomic_write(target: Path, content: str) -> None:
    """Replace ``target`` with ``content`` via a temp file and ``os.replace``.

    Readers see either the old file or the new one, never a partial write.

    Raises:
        FixIOError: If any step fails. The temp file is removed.
    """
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as e:
        raise FixIOError(f"Failed to write {target}: {e}") from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("Could not remove temp file %s", tmp_name)


class FixEngine:
    """Previews and applies config_replace fixes.

    Args:
        settings: Backup location and restart wait.
        runtime: Container lifecycle collaborator (docker CLI by default).
        synthesizer: Produces baseline content when the target file is missing.
        clock: Current time, used for backup names and ``applied_at``.
        sleep: Blocking wait between restart and verification.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runtime: ContainerRuntime | None = None,
        synthesizer: ConfigSynthesizer | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or Settings()
        self.runtime = runtime or DockerCLIRuntime(
            CommandRunner(timeout=self.settings.command_timeout),
            binary=self.settings.docker_binary,
        )
        self.synthesizer = synthesizer
        self.clock = clock
        self.sleep = sleep

    # =========================================================================
    # READ OPERATIONS - No filesystem side effects
    # =========================================================================

    def validate(self, finding: Finding) -> tuple[Path, str]:
        """Check the payload can be previewed/applied.

        Returns:
            (target path, replacement content)

        Raises:
            ValidationError: Wrong kind, missing target or missing content.
        """
        fix = finding.fix
        if fix.kind is not FixKind.CONFIG_REPLACE:
            raise ValidationError(
                f"Finding {finding.id} has a {fix.kind.value} fix; only config_replace can be applied"
            )
        if not fix.target_path:
            raise ValidationError(f"Finding {finding.id} has no target config file")
        if fix.new_content is None:
            raise ValidationError(f"Finding {finding.id} has no replacement content")
        return Path(fix.target_path).expanduser(), fix.new_content

    def synthesize(self, container_name: str) -> str:
        """Generate baseline content from the container's live configuration."""
        if self.synthesizer is None:
            raise NotFoundError(f"No config synthesizer available for {container_name!r}")
        logger.info("Synthesizing config for container %s", container_name)
        return self.synthesizer.synthesize(container_name)

    def preview(self, finding: Finding) -> DiffPreview:
        """Diff and side effects of applying ``finding``'s fix."""
        target, proposed = self.validate(finding)
        original = self._read(target)
        synthesized = False
        if original is None:
            if not finding.container:
                raise NotFoundError(f"{target} does not exist and the finding names no container")
            original = self.synthesize(finding.container)
            synthesized = True
        return self.build_preview(finding, target, original, proposed, synthesized=synthesized)

    def build_preview(
        self,
        finding: Finding,
        target: Path,
        original: str,
        proposed: str,
        synthesized: bool = False,
    ) -> DiffPreview:
        """Preview against explicitly supplied baseline content."""
        return DiffPreview(
            original=original,
            proposed=proposed,
            diff=compute_diff(original, proposed, str(target)),
            side_effects=describe_side_effects(original, proposed, finding),
            target_path=str(target),
            synthesized=synthesized,
        )

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    def materialize(self, finding: Finding, content: str) -> Path:
        """Deliberately write synthesized baseline content to the fix target."""
        if finding.fix.kind is not FixKind.CONFIG_REPLACE or not finding.fix.target_path:
            raise ValidationError(f"Finding {finding.id} has no config file to materialize")
        target = Path(finding.fix.target_path).expanduser()
        with path_lock(target):
            atomic_write(target, content)
        logger.info("Materialized synthesized config at %s", target)
        return target

    def apply(self, finding: Finding) -> FixResult:
        """Apply the fix with backup, restart verification and rollback.

        Raises:
            ValidationError: The payload cannot be applied at all.

        Other failures come back as ``FixResult(success=False)`` with an
        ``error_code``.
        """
        target, new_content = self.validate(finding)
        with path_lock(target):
            try:
                return self._apply_locked(finding, target, new_content)
            except FixError as e:
                logger.error("Fix %s failed: %s", finding.id, e)
                return FixResult(
                    success=False,
                    backup_path=e.backup_path,
                    error=str(e),
                    error_code=e.code,
                )

    def _apply_locked(self, finding: Finding, target: Path, new_content: str) -> FixResult:
        # Step 1: Current content, synthesized and written if missing
        original = self._read(target)
        if original is None:
            if not finding.container:
                raise NotFoundError(f"{target} does not exist and the finding names no container")
            original = self.synthesize(finding.container)
            atomic_write(target, original)
            logger.info("Materialized synthesized config at %s", target)

        # Step 2: Backup (failure aborts before touching the live file)
        backup = self._write_backup(target, original, finding.id)

        # Step 3: Atomic write
        try:
            atomic_write(target, new_content)
        except FixIOError as e:
            e.backup_path = str(backup)
            raise
        logger.info("Wrote fix %s to %s", finding.id, target)

        # Step 4: Restart and verify
        restart_target = finding.fix.restart_target or finding.container
        restarted = None
        if finding.fix.requires_restart and restart_target:
            try:
                self._restart_and_verify(restart_target)
            except RestartError as e:
                rollback_note = self._rollback(target, original)
                raise RestartError(f"{e}{rollback_note}", backup_path=str(backup)) from e
            restarted = restart_target

        return FixResult(
            success=True,
            backup_path=str(backup),
            container_restarted=restarted,
            applied_at=self.clock().isoformat(),
        )

    def _read(self, target: Path) -> str | None:
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FixIOError(f"Failed to read {target}: {e}") from e

    def _write_backup(self, target: Path, content: str, finding_id: str) -> Path:
        """Write pre-fix content to a fresh backup file; never overwrites."""
        backup_dir = Path(self.settings.backup_dir).expanduser()
        name = backup_name(target, finding_id, self.clock())
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            path = backup_dir / name
            attempt = 1
            while True:
                try:
                    with open(path, "x", encoding="utf-8") as f:
                        f.write(content)
                    break
                except FileExistsError:
                    attempt += 1
                    path = backup_dir / f"{Path(name).stem}-{attempt}{target.suffix}"
        except OSError as e:
            raise FixIOError(f"Failed to create backup of {target}: {e}") from e

        logger.info("Backup created: %s", path)
        return path

    def _restart_and_verify(self, name: str) -> None:
        try:
            self.runtime.restart_or_start(name)
        except Exception as e:
            raise RestartError(f"Failed to restart container {name}: {e}") from e

        self.sleep(self.settings.restart_wait_seconds)

        try:
            running = self.runtime.is_running(name)
        except Exception as e:
            raise RestartError(f"Could not inspect container {name}: {e}") from e
        if not running:
            raise RestartError(f"Container {name} is not running after restart")
        logger.info("Container %s restarted", name)

    def _rollback(self, target: Path, original: str) -> str:
        try:
            atomic_write(target, original)
        except FixIOError as e:
            logger.error("Rollback of %s failed: %s", target, e)
            return f" (rollback failed: {e}; restore from backup manually)"
        logger.warning("Rolled back %s to pre-fix content", target)
        return " (configuration rolled back)"
