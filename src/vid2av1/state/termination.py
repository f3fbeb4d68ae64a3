"""Forceful termination of external tool processes."""

from __future__ import annotations

import logging
from collections.abc import Callable

import psutil

logger = logging.getLogger(__name__)

Terminator = Callable[[int], None]


def terminate_process_tree(pid: int) -> None:
    """Kill a process and all of its descendants.

    Children are killed before the parent so none are re-parented and left
    running. Processes that already exited are skipped.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.debug("Process %d already exited", pid)
        return

    try:
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logger.warning("Failed to kill child process %d: %s", child.pid, e)

    try:
        parent.kill()
        logger.info("Terminated process tree", extra={"pid": pid})
    except psutil.NoSuchProcess:
        logger.debug("Process %d exited before it could be killed", pid)
    except psutil.Error as e:
        logger.warning("Failed to kill process %d: %s", pid, e)
