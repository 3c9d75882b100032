"""Configuration loading utilities for m3fs-deployer."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .paths import DEFAULT_WORK_DIR

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("cluster.json")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Node:
    """A host of the storage cluster."""

    name: str
    host: str
    port: int = 22
    username: str = "root"
    password: Optional[str] = None
    key_path: Optional[str] = None


@dataclass
class Service:
    """Placement of one service on inventory nodes."""

    nodes: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Service":
        payload = dict(payload or {})
        nodes = list(payload.pop("nodes", []) or [])
        options = dict(payload.pop("options", {}) or {})
        # 其余未知字段也并入 options
        options.update(payload)
        return cls(nodes=nodes, options=options)


@dataclass
class DeploymentConfig:
    """Settings related to deployment resume."""

    resume_enabled: bool = False
    progress_file_path: Optional[str] = None


@dataclass
class UIConfig:
    """Settings for console progress output."""

    show_progress: bool = True
    progress_style: str = "bar"       # "bar" | "percentage" | 其他 -> plain
    task_info_color: str = "green"    # 颜色名或 "none"


@dataclass
class Config:
    """Top-level configuration."""

    name: str = "3fs"
    work_dir: str = DEFAULT_WORK_DIR
    cmd_max_exit_timeout: int = 60
    nodes: List[Node] = field(default_factory=list)
    services: Dict[str, Service] = field(default_factory=dict)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    ui: UIConfig = field(default_factory=UIConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Config":
        deployment_payload = payload.get("deployment", {}) or {}
        ui_payload = payload.get("ui", {}) or {}

        # 过滤掉以下划线开头的注释字段
        deployment_payload = {k: v for k, v in deployment_payload.items() if not k.startswith("_")}
        ui_payload = {k: v for k, v in ui_payload.items() if not k.startswith("_")}

        nodes = [Node(**node) for node in payload.get("nodes", []) or []]
        services = {
            name: Service.from_dict(service)
            for name, service in (payload.get("services", {}) or {}).items()
        }

        defaults = cls()
        return cls(
            name=payload.get("name", defaults.name),
            work_dir=payload.get("work_dir", defaults.work_dir),
            cmd_max_exit_timeout=int(
                payload.get("cmd_max_exit_timeout", defaults.cmd_max_exit_timeout)
            ),
            nodes=nodes,
            services=services,
            deployment=DeploymentConfig(
                **{**DeploymentConfig().__dict__, **deployment_payload}
            ),
            ui=UIConfig(**{**UIConfig().__dict__, **ui_payload}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        seen = set()
        for node in self.nodes:
            if node.name in seen:
                raise ValueError(f"Duplicate node name: {node.name}")
            seen.add(node.name)
        for service_name, service in self.services.items():
            for node_name in service.nodes:
                if node_name not in seen:
                    raise ValueError(
                        f"Service {service_name} references unknown node {node_name}"
                    )


def _apply_env_overrides(config: Config) -> None:
    env_work_dir = os.getenv("M3FS_WORK_DIR")
    if env_work_dir:
        config.work_dir = env_work_dir

    env_resume = os.getenv("M3FS_RESUME_ENABLED")
    if env_resume:
        config.deployment.resume_enabled = env_resume.strip().lower() in _TRUTHY

    env_progress_file = os.getenv("M3FS_PROGRESS_FILE")
    if env_progress_file:
        config.deployment.progress_file_path = env_progress_file

    env_color = os.getenv("M3FS_TASK_INFO_COLOR")
    if env_color:
        config.ui.task_info_color = env_color

    env_timeout = os.getenv("M3FS_CMD_MAX_EXIT_TIMEOUT")
    if env_timeout:
        config.cmd_max_exit_timeout = int(env_timeout)


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - M3FS_WORK_DIR: Working directory for artifacts and progress
    - M3FS_RESUME_ENABLED: Resume a previous deployment (1/true/yes/on)
    - M3FS_PROGRESS_FILE: Explicit progress file path
    - M3FS_TASK_INFO_COLOR: Highlight color for task lines, or "none"
    - M3FS_CMD_MAX_EXIT_TIMEOUT: Seconds to wait for a local command to exit
    """

    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    for candidate in candidate_paths:
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            try:
                config = Config.from_dict(data)
            except TypeError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
            _apply_env_overrides(config)
            config.validate()
            return config

    raise FileNotFoundError(
        f"Could not find configuration file. Looked in: {', '.join(str(p) for p in candidate_paths)}"
    )
