"""Durable deployment progress for resumable runs."""

from __future__ import annotations

import json
import math
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import ProgressFileError, ProgressParseError
from .display import highlight

PROGRESS_BAR_WIDTH = 30


def now() -> datetime:
    return datetime.now().astimezone()


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_time(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ProgressParseError(f"{field_name}: expected ISO timestamp, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ProgressParseError(f"{field_name}: {exc}") from exc
    if parsed.tzinfo is None:
        raise ProgressParseError(f"{field_name}: timestamp {value!r} has no UTC offset")
    return parsed


@dataclass
class TaskProgressRecord:
    """Progress of a single task; end_time is set iff completed."""

    task_id: str
    name: str
    start_time: datetime = field(default_factory=now)
    completed: bool = False
    total_steps: int = 0
    completed_steps: int = 0
    end_time: Optional[datetime] = None

    def mark_completed(self) -> None:
        self.completed = True
        self.end_time = now()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "taskId": self.task_id,
            "name": self.name,
            "completed": self.completed,
            "totalSteps": self.total_steps,
            "completedSteps": self.completed_steps,
            "startTime": _format_time(self.start_time),
        }
        if self.end_time is not None:
            data["endTime"] = _format_time(self.end_time)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskProgressRecord":
        try:
            start_time = _parse_time(data["startTime"], "startTime")
            end_time = _parse_time(data.get("endTime"), "endTime")
            completed = data.get("completed", False)
            if not isinstance(completed, bool):
                raise ProgressParseError(f"completed: expected true/false, got {completed!r}")
            if completed and end_time is None:
                raise ProgressParseError(f"task {data['taskId']!r} is completed without endTime")
            return cls(
                task_id=str(data["taskId"]),
                name=str(data["name"]),
                start_time=start_time or now(),
                completed=completed,
                total_steps=int(data.get("totalSteps", 0)),
                completed_steps=int(data.get("completedSteps", 0)),
                end_time=end_time,
            )
        except ProgressParseError:
            raise
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise ProgressParseError(f"invalid task progress entry: {exc!r}") from exc


@dataclass
class DeploymentProgress:
    """Aggregate progress of one deployment attempt.

    completed_tasks always equals the number of completed records at every
    point the runner persists the progress.
    """

    start_time: datetime = field(default_factory=now)
    end_time: Optional[datetime] = None
    total_tasks: int = 0
    completed_tasks: int = 0
    current_task: str = ""
    task_progress: Dict[str, TaskProgressRecord] = field(default_factory=dict)

    @classmethod
    def create(cls) -> "DeploymentProgress":
        return cls()

    def is_task_completed(self, task_id: str) -> bool:
        record = self.task_progress.get(task_id)
        return record is not None and record.completed

    def percentage(self, task_index: int) -> float:
        if self.total_tasks <= 0:
            return 0.0
        return task_index / self.total_tasks * 100

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"startTime": _format_time(self.start_time)}
        if self.end_time is not None:
            data["endTime"] = _format_time(self.end_time)
        data.update(
            {
                "totalTasks": self.total_tasks,
                "completedTasks": self.completed_tasks,
                "currentTask": self.current_task,
                "taskProgress": {
                    task_id: record.to_dict()
                    for task_id, record in self.task_progress.items()
                },
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "DeploymentProgress":
        if not isinstance(data, dict):
            raise ProgressParseError("progress file must contain a JSON object")
        task_progress = data.get("taskProgress") or {}
        if not isinstance(task_progress, dict):
            raise ProgressParseError("taskProgress must be an object")
        try:
            start_time = _parse_time(data.get("startTime"), "startTime")
            return cls(
                start_time=start_time or now(),
                end_time=_parse_time(data.get("endTime"), "endTime"),
                total_tasks=int(data.get("totalTasks", 0)),
                completed_tasks=int(data.get("completedTasks", 0)),
                current_task=str(data.get("currentTask", "") or ""),
                task_progress={
                    str(task_id): TaskProgressRecord.from_dict(entry)
                    for task_id, entry in task_progress.items()
                },
            )
        except ProgressParseError:
            raise
        except (TypeError, ValueError, OverflowError) as exc:
            raise ProgressParseError(f"invalid progress file: {exc}") from exc

    def persist(self, path: Union[str, Path]) -> None:
        """Write progress as indented JSON, replacing `path` atomically."""
        path = Path(path)
        payload = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ProgressFileError(f"save progress to {path}: {exc}") from exc

    @classmethod
    def restore(cls, path: Union[str, Path]) -> "DeploymentProgress":
        """Load progress from `path`; a missing file means a fresh deployment."""
        path = Path(path)
        if not path.exists():
            return cls.create()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ProgressFileError(f"read progress from {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise ProgressParseError(f"parse progress file {path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProgressParseError(f"parse progress file {path}: {exc}") from exc
        return cls.from_dict(data)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------
    def render(
        self,
        task_index: int,
        task_name: str,
        style: str = "bar",
        color: Optional[str] = None,
    ) -> str:
        """Describe progress at `task_index` (0-based) in bar/percentage/plain style."""
        percentage = self.percentage(task_index)
        position = f"({task_index + 1}/{self.total_tasks})"

        if style == "bar":
            # 例如: [==========>     ] 60.0% (7/10) Current: Installing Meta Service
            message = (
                f"{progress_bar(percentage)} {percentage:.1f}% {position} "
                f"Current: {task_name}"
            )
        elif style == "percentage":
            message = (
                f"Deployment progress: {percentage:.1f}% {position} - "
                f"Running task: {task_name}"
            )
        else:
            message = f"Running task {task_name} {position}"

        return highlight(message, color)

    def render_completion(self, color: Optional[str] = None) -> List[str]:
        lines = [highlight("Deployment completed successfully!", color, bold=True)]
        if self.end_time is not None:
            elapsed = (self.end_time - self.start_time).total_seconds()
            lines.append(f"Total deployment time: {format_duration(elapsed)}")
        return lines


def progress_bar(percentage: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    filled = min(max(math.floor(width * percentage / 100), 0), width)
    cells = []
    for i in range(width):
        if i < filled:
            cells.append("=")
        elif i == filled:
            cells.append(">")
        else:
            cells.append(" ")
    return "[" + "".join(cells) + "]"


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as e.g. "1 hours 5 seconds"."""
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours} hours")
    if minutes > 0:
        parts.append(f"{minutes} minutes")
    if secs > 0 or not parts:
        parts.append(f"{secs} seconds")
    return " ".join(parts)
