"""
Forked session context.

A forked task starts from a private copy of the caller's conversation log so
that the subprocess can read and extend it without touching the original.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Sequence

from taskweave.core.errors import ForkPrerequisiteError
from taskweave.utils.logger import get_logger


logger = get_logger(__name__)

SEED_FILENAME = "seed.jsonl"
DEFAULT_TEMP_PREFIX = "taskweave-fork-"


@dataclass(frozen=True)
class ForkSession:
    """A temporary directory holding one task's copy of the session log."""

    dir: Path
    seed_path: Path


def _create_fork_session_sync(session_file: Path, prefix: str) -> ForkSession:
    tmp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    seed_path = tmp_dir / SEED_FILENAME
    try:
        shutil.copyfile(session_file, seed_path)
    except BaseException:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        raise
    return ForkSession(dir=tmp_dir, seed_path=seed_path)


async def create_fork_session(
    session_file: str | Path,
    prefix: str = DEFAULT_TEMP_PREFIX,
) -> ForkSession:
    """
    Copy a session log into a fresh temporary directory.

    Args:
        session_file: Existing conversation log
        prefix: Temp directory name prefix

    Returns:
        ForkSession owning the new directory

    Raises:
        OSError: If the copy fails; the temp directory is removed first
    """
    session = await asyncio.to_thread(_create_fork_session_sync, Path(session_file), prefix)
    logger.debug(f"Created fork session {session.dir}")
    return session


async def cleanup_fork_session(session: ForkSession | None) -> None:
    """Remove a fork session directory. Never raises."""
    if session is None:
        return
    try:
        shutil.rmtree(session.dir)
        logger.debug(f"Removed fork session {session.dir}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Failed to remove fork session {session.dir}: {e}")


@asynccontextmanager
async def fork_session(
    session_file: str | Path | None,
    enabled: bool,
    prefix: str = DEFAULT_TEMP_PREFIX,
) -> AsyncIterator[ForkSession | None]:
    """
    Scope a fork session to a block.

    Yields None when forking is disabled. The directory is removed on every
    exit path, including cancellation.
    """
    if not enabled:
        yield None
        return

    if not session_file:
        raise ForkPrerequisiteError()

    session = await create_fork_session(session_file, prefix)
    try:
        yield session
    finally:
        await cleanup_fork_session(session)


def apply_fork_session_args(base_args: Sequence[str], session: ForkSession | None) -> list[str]:
    """Swap ``--no-session`` for the seed session arguments when forking."""
    if session is None:
        return list(base_args)
    filtered = [arg for arg in base_args if arg != "--no-session"]
    return [*filtered, "--session", str(session.seed_path), "--session-dir", str(session.dir)]
