"""Side-effect signals for ZenPlaner.

Services announce events (task completed, reflection saved, ...) through
a Signals object. HookSignals runs the shell commands configured for the
event in planner/hooks.yaml, passing the event context as JSON on stdin:

    on_task_complete:
      - "notify-send 'Erledigt'"
      - command: "./scripts/log.sh"
        timeout: 5

Hook points:
- on_task_add, on_task_complete, on_task_delete
- on_reflection_saved
- on_data_wiped
"""

from __future__ import annotations

import json
import logging
import subprocess
import threading
from pathlib import Path
from typing import Any, Protocol

from core.errors import PersistenceFailure
from core.fileio import read_yaml
from core.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {
    "on_task_add",
    "on_task_complete",
    "on_task_delete",
    "on_reflection_saved",
    "on_data_wiped",
}

DEFAULT_TIMEOUT = 30


class Signals(Protocol):
    def emit(self, event: str, context: dict[str, Any]) -> None:
        ...


class NullSignals:
    def emit(self, event: str, context: dict[str, Any]) -> None:
        pass


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    """Load hooks configuration from planner/hooks.yaml."""
    if root is None:
        root = workspace_root()
    try:
        return read_yaml(hooks_config_path(root))
    except PersistenceFailure as e:
        logger.warning("Ignoring unreadable hooks config: %s", e)
        return {}


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run all hooks registered for a given hook point.

    Returns one result per hook with exit code and captured output.
    """
    if hook_point not in VALID_HOOK_POINTS:
        logger.debug("Unknown hook point %s", hook_point)
        return []

    if root is None:
        root = workspace_root()

    hooks = load_hooks_config(root).get(hook_point, [])
    if not hooks or not isinstance(hooks, list):
        return []

    results = []
    context_json = json.dumps(context, ensure_ascii=False)

    for hook in hooks:
        if isinstance(hook, str):
            command = hook
            timeout = DEFAULT_TIMEOUT
        elif isinstance(hook, dict):
            command = hook.get("command", "")
            timeout = hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            continue

        if not command:
            continue

        result: dict[str, Any] = {"command": command, "hook_point": hook_point}
        try:
            proc = subprocess.run(
                command,
                shell=True,
                input=context_json,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(root),
            )
            result["exit_code"] = proc.returncode
            result["stdout"] = proc.stdout[:4096]
            result["stderr"] = proc.stderr[:4096]
            if proc.returncode != 0:
                logger.warning("Hook %r for %s exited with %d", command, hook_point, proc.returncode)
        except subprocess.TimeoutExpired:
            result["exit_code"] = -1
            result["error"] = f"Hook timed out after {timeout}s"
            logger.warning("Hook %r for %s timed out after %ss", command, hook_point, timeout)
        except OSError as e:
            result["exit_code"] = -1
            result["error"] = str(e)
            logger.warning("Hook %r for %s failed: %s", command, hook_point, e)

        results.append(result)

    return results


class HookSignals:
    """Signals delivered as workspace hooks.

    With background=True (the default) hooks run on a daemon thread so the
    emitting operation never waits for them.
    """

    def __init__(self, root: Path | None = None, enabled: bool = True, background: bool = True) -> None:
        self.root = root if root is not None else workspace_root()
        self.enabled = enabled
        self.background = background

    def emit(self, event: str, context: dict[str, Any]) -> None:
        if not self.enabled:
            return
        if self.background:
            threading.Thread(target=self._run, args=(event, context), daemon=True).start()
        else:
            self._run(event, context)

    def _run(self, event: str, context: dict[str, Any]) -> None:
        try:
            run_hooks(event, context, self.root)
        except Exception:
            logger.exception("Hook dispatch for %s failed", event)
