"""Sequential task runner with resumable progress."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

from ..config import Config
from ..errors import PreconditionError, ProgressFileError, ProgressParseError, TaskRunError
from ..local import LocalSession
from ..paths import resolve_progress_file
from ..utils.logging import get_logger, node_logger, task_logger
from ..utils.net import find_local_node, get_local_ips
from .base import Task
from .display import highlight, resolve_color
from .progress import DeploymentProgress, TaskProgressRecord, now
from .runtime import KeyLike, Runtime

logger = get_logger(__name__)


class Runner:
    """
    Task runner.

    Runs registered tasks one at a time in registration order. With resume
    enabled, progress is written to disk around every task so that a restarted
    deployment skips what already finished.
    """

    def __init__(
        self,
        config: Config,
        *tasks: Task,
        local_ips_resolver: Callable[[], Iterable[str]] = get_local_ips,
    ) -> None:
        self.config = config
        self.runtime: Optional[Runtime] = None
        self.progress_file: Optional[Path] = None
        self._tasks: List[Task] = []
        self._local_ips_resolver = local_ips_resolver
        self._initialized = False
        self.register(*tasks)

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    @property
    def progress(self) -> Optional[DeploymentProgress]:
        return self.runtime.progress if self.runtime else None

    @property
    def resume_enabled(self) -> bool:
        return self.config.deployment.resume_enabled

    def register(self, *tasks: Task) -> None:
        """Append tasks; only allowed before initialize()."""
        if self._initialized:
            raise PreconditionError("runner has been initialized")
        known = {task.task_id for task in self._tasks}
        for task in tasks:
            if task.task_id in known:
                raise PreconditionError(f"duplicate task id {task.task_id!r}")
            known.add(task.task_id)
        self._tasks.extend(tasks)

    def store(self, key: KeyLike, value: Any) -> None:
        if self.runtime is None:
            raise PreconditionError("Runtime hasn't been initialized")
        self.runtime.store(key, value)

    def initialize(self) -> None:
        """Build the runtime, load or create progress, and init all tasks."""
        if self._initialized:
            raise PreconditionError("runner has been initialized")
        cfg = self.config

        local_node = find_local_node(cfg.nodes, self._local_ips_resolver())
        if local_node is not None:
            logger.debug("Local node is %s (%s)", local_node.name, local_node.host)

        runtime = Runtime(
            config=cfg,
            work_dir=cfg.work_dir,
            nodes={node.name: node for node in cfg.nodes},
            services=dict(cfg.services),
            local_node=local_node,
        )
        runtime.local_em = LocalSession(
            cfg.work_dir,
            username=local_node.username if local_node else None,
            password=local_node.password if local_node else None,
            max_exit_timeout=cfg.cmd_max_exit_timeout,
            logger=node_logger("<LOCAL>"),
        )
        self.runtime = runtime

        self._init_progress_tracking()

        for task in self._tasks:
            task.init(runtime, task_logger(task.name))
        self._initialized = True

    def _init_progress_tracking(self) -> None:
        assert self.runtime is not None
        deployment = self.config.deployment
        self.progress_file = resolve_progress_file(
            self.config.work_dir, deployment.progress_file_path
        )

        if deployment.resume_enabled:
            try:
                progress = DeploymentProgress.restore(self.progress_file)
            except (ProgressFileError, ProgressParseError) as exc:
                logger.warning("Failed to load progress file: %s, starting fresh deployment", exc)
                progress = DeploymentProgress.create()
            else:
                logger.info(
                    "Resuming deployment with %d/%d completed tasks",
                    progress.completed_tasks,
                    progress.total_tasks,
                )
        else:
            progress = DeploymentProgress.create()

        progress.total_tasks = len(self._tasks)
        self.runtime.progress = progress

    def _save_progress(self, what: str = "progress") -> None:
        """Persist progress when resume is enabled; failures only warn."""
        if not self.resume_enabled:
            return
        assert self.progress is not None and self.progress_file is not None
        try:
            self.progress.persist(self.progress_file)
        except ProgressFileError as exc:
            logger.warning("Failed to save %s: %s", what, exc)

    def run(self, cancel: Optional[threading.Event] = None) -> None:
        """Run all tasks in order.

        Raises:
            TaskRunError: the first task that failed, with its exception chained.
        """
        if not self._initialized or self.progress is None:
            raise PreconditionError("runner hasn't been initialized")
        if cancel is None:
            cancel = threading.Event()

        ui = self.config.ui
        color = resolve_color(ui.task_info_color)
        progress = self.progress

        for index, task in enumerate(self._tasks):
            task_id = task.task_id

            if self.resume_enabled and progress.is_task_completed(task_id):
                logger.info(
                    "Skipping completed task %s (%d/%d)", task.name, index + 1, progress.total_tasks
                )
                continue

            progress.current_task = task.name
            if ui.show_progress:
                logger.info(progress.render(index, task.name, ui.progress_style, color))
            else:
                logger.info(highlight(f"Running task {task.name}", color, bold=True))

            record = TaskProgressRecord(task_id=task_id, name=task.name)
            progress.task_progress[task_id] = record
            self._save_progress()

            try:
                task.run(cancel)
            except Exception as exc:
                logger.debug("Task %s failed", task.name, exc_info=True)
                raise TaskRunError(task.name, exc) from exc

            record.mark_completed()
            progress.completed_tasks += 1
            self._save_progress()

        progress.end_time = now()

        if ui.show_progress:
            for line in progress.render_completion(color):
                logger.info(line)

        self._save_progress("final progress")
