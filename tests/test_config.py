import json
import os
import tempfile
import unittest
from pathlib import Path

from m3fs_deployer.config import Config, load_config
from m3fs_deployer.paths import PROGRESS_FILE_NAME, resolve_progress_file

SAMPLE = {
    "name": "prod",
    "work_dir": "/data/3fs",
    "nodes": [
        {"name": "node1", "host": "10.0.0.1", "password": "pw"},
        {"name": "node2", "host": "10.0.0.2", "port": 2222, "username": "ops"},
    ],
    "services": {
        "mgmtd": {"nodes": ["node1"]},
        "storage": {"nodes": ["node1", "node2"], "disk_number": 4},
    },
    "deployment": {"resume_enabled": True, "_comment": "ignored"},
    "ui": {"progress_style": "percentage", "task_info_color": "cyan"},
}

ENV_KEYS = (
    "M3FS_WORK_DIR",
    "M3FS_RESUME_ENABLED",
    "M3FS_PROGRESS_FILE",
    "M3FS_TASK_INFO_COLOR",
    "M3FS_CMD_MAX_EXIT_TIMEOUT",
)


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._saved_env = {key: os.environ.pop(key, None) for key in ENV_KEYS}
        self._tmp = tempfile.TemporaryDirectory()
        self.config_file = Path(self._tmp.name) / "cluster.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()
        for key, value in self._saved_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def write(self, payload: dict) -> str:
        self.config_file.write_text(json.dumps(payload), encoding="utf-8")
        return str(self.config_file)

    def test_defaults(self) -> None:
        config = Config()
        self.assertFalse(config.deployment.resume_enabled)
        self.assertIsNone(config.deployment.progress_file_path)
        self.assertTrue(config.ui.show_progress)
        self.assertEqual(config.ui.progress_style, "bar")
        self.assertEqual(config.ui.task_info_color, "green")

    def test_loads_custom_config(self) -> None:
        config = load_config(self.write(SAMPLE))
        self.assertEqual(config.name, "prod")
        self.assertEqual(config.work_dir, "/data/3fs")
        self.assertEqual([n.name for n in config.nodes], ["node1", "node2"])
        self.assertEqual(config.nodes[1].port, 2222)
        self.assertEqual(config.nodes[0].username, "root")
        self.assertEqual(config.services["storage"].nodes, ["node1", "node2"])
        self.assertEqual(config.services["storage"].options, {"disk_number": 4})
        self.assertTrue(config.deployment.resume_enabled)
        self.assertEqual(config.ui.progress_style, "percentage")
        self.assertTrue(config.ui.show_progress)

    def test_env_vars_override_file(self) -> None:
        os.environ["M3FS_WORK_DIR"] = "/srv/3fs"
        os.environ["M3FS_RESUME_ENABLED"] = "no"
        os.environ["M3FS_PROGRESS_FILE"] = "/srv/progress.json"
        os.environ["M3FS_TASK_INFO_COLOR"] = "none"
        os.environ["M3FS_CMD_MAX_EXIT_TIMEOUT"] = "5"
        config = load_config(self.write(SAMPLE))
        self.assertEqual(config.work_dir, "/srv/3fs")
        self.assertFalse(config.deployment.resume_enabled)
        self.assertEqual(config.deployment.progress_file_path, "/srv/progress.json")
        self.assertEqual(config.ui.task_info_color, "none")
        self.assertEqual(config.cmd_max_exit_timeout, 5)

    def test_unknown_service_node_rejected(self) -> None:
        payload = dict(SAMPLE, services={"meta": {"nodes": ["ghost"]}})
        with self.assertRaises(ValueError):
            load_config(self.write(payload))

    def test_missing_file(self) -> None:
        cwd = os.getcwd()
        os.chdir(self._tmp.name)
        try:
            with self.assertRaises(FileNotFoundError):
                load_config(str(Path(self._tmp.name) / "absent.json"))
        finally:
            os.chdir(cwd)


class PathTests(unittest.TestCase):
    def test_progress_file_resolution(self) -> None:
        self.assertEqual(
            resolve_progress_file("/opt/3fs"), Path("/opt/3fs") / PROGRESS_FILE_NAME
        )
        self.assertEqual(
            resolve_progress_file("/opt/3fs", "/tmp/p.json"), Path("/tmp/p.json")
        )


if __name__ == "__main__":
    unittest.main()
