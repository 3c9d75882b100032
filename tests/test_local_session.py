import subprocess
import tempfile
import unittest
from unittest import mock

from m3fs_deployer.local import LocalSession


class LocalSessionTests(unittest.TestCase):
    def test_run_captures_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            session = LocalSession(tmp)
            result = session.run("pwd; echo err >&2")
            self.assertTrue(result.ok)
            self.assertTrue(result.stdout.endswith(tmp.rsplit("/", 1)[-1]))
            self.assertEqual(result.stderr, "err")

    def test_argv_is_quoted(self) -> None:
        result = LocalSession().run(["echo", "a b", "$HOME"])
        self.assertEqual(result.stdout, "a b $HOME")

    def test_non_zero_exit(self) -> None:
        result = LocalSession().run("exit 4")
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_status, 4)

    def test_timeout_returns_failure(self) -> None:
        result = LocalSession(max_exit_timeout=1).run("sleep 5")
        self.assertEqual(result.exit_status, -1)
        self.assertIn("timed out", result.stderr)

    def test_sudo_without_password_gets_empty_stdin(self) -> None:
        completed = subprocess.CompletedProcess(args="", returncode=0, stdout="", stderr="")
        with mock.patch("m3fs_deployer.local.session.subprocess.run", return_value=completed) as run:
            LocalSession().run("whoami", sudo=True)
            LocalSession(password="secret").run("whoami", sudo=True)
        self.assertEqual(run.call_args_list[0].kwargs["input"], "")
        self.assertEqual(run.call_args_list[1].kwargs["input"], "secret\n")
        self.assertTrue(run.call_args_list[0].args[0].startswith("sudo -S "))


if __name__ == "__main__":
    unittest.main()
