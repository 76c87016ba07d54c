# backend/timestamps.py
import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Union

logger = logging.getLogger("meta")


class TimestampOracle(Protocol):
    """Best-known last change time for a path relative to the tree root."""

    name: str

    def change_time_ms(self, rel_path: str) -> Optional[int]:
        ...


class NullTimestampOracle:
    name = "fs"

    def change_time_ms(self, rel_path: str) -> Optional[int]:
        return None


class GitTimestampOracle:
    """
    Uses the commit time of the last commit touching a path.
    Every failure (no git, not a repo, untracked file, timeout) yields None
    so the caller falls back to filesystem time for that one file.
    """

    name = "git+fs"

    def __init__(self, root: Union[str, Path], timeout_seconds: float = 5.0):
        self.root = Path(root)
        self.timeout_seconds = timeout_seconds
        self._available: Optional[bool] = None

    def _run_git(self, args: List[str]) -> Optional[subprocess.CompletedProcess]:
        try:
            return subprocess.run(
                ["git", "-C", str(self.root), *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"[META] git {' '.join(args[:2])} failed: {e}")
            return None

    @property
    def available(self) -> bool:
        if self._available is None:
            proc = self._run_git(["rev-parse", "--is-inside-work-tree"])
            self._available = bool(proc and proc.returncode == 0 and proc.stdout.strip() == "true")
            if not self._available:
                logger.info(f"[META] {self.root} is not inside a git work tree; using filesystem times")
        return self._available

    def change_time_ms(self, rel_path: str) -> Optional[int]:
        if not self.available:
            return None
        # Pathspec is relative to -C, i.e. the tree root; ":(literal)" disables globbing.
        proc = self._run_git(["log", "-1", "--format=%ct", "--", f":(literal){rel_path}"])
        if proc is None or proc.returncode != 0:
            return None
        return parse_epoch_seconds(proc.stdout)


def fs_mtime_ms(st: os.stat_result) -> int:
    """Filesystem mtime as integer UTC milliseconds."""
    return st.st_mtime_ns // 1_000_000


def parse_epoch_seconds(raw: Optional[str]) -> Optional[int]:
    """Seconds-since-epoch text to milliseconds; None unless a positive integer."""
    text = (raw or "").strip()
    if not (text.isascii() and text.isdigit()):
        return None
    seconds = int(text)
    if seconds <= 0:
        return None
    return seconds * 1000
