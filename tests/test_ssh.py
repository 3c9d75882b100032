import unittest

from m3fs_deployer.config import Node
from m3fs_deployer.ssh import SSHCredentials, SSHSession


class FakeChannel:
    def __init__(self, status: int = 0) -> None:
        self._status = status

    def recv_exit_status(self) -> int:
        return self._status


class FakeStream:
    def __init__(self, data: str, status: int = 0) -> None:
        self._data = data.encode("utf-8")
        self.channel = FakeChannel(status)
        self.written: list[str] = []

    def read(self) -> bytes:
        return self._data

    def write(self, data: str) -> None:
        self.written.append(data)

    def flush(self) -> None:
        pass


class FakeSSHClient:
    def __init__(self, status: int = 0) -> None:
        self.connected = False
        self.closed = False
        self.commands: list[str] = []
        self.stdin = FakeStream("")
        self.status = status

    def set_missing_host_key_policy(self, policy) -> None:  # pragma: no cover - noop
        self.policy = policy

    def connect(self, **kwargs) -> None:
        self.connected = True
        self.kwargs = kwargs

    def exec_command(self, command: str, timeout=None):
        self.commands.append(command)
        return (self.stdin, FakeStream("ok", self.status), FakeStream("warn"))

    def close(self) -> None:
        self.closed = True


class SSHSessionTests(unittest.TestCase):
    def test_run_command_uses_client_factory(self) -> None:
        credentials = SSHCredentials(host="example.com", username="root", password="secret")
        clients = []

        def factory():
            clients.append(FakeSSHClient())
            return clients[-1]

        session = SSHSession(credentials, client_factory=factory)  # type: ignore[arg-type]
        with session:
            result = session.run("echo test")
        self.assertTrue(result.ok)
        self.assertEqual(result.stdout, "ok")
        self.assertEqual(result.stderr, "warn")
        self.assertEqual(clients[0].kwargs["password"], "secret")
        self.assertTrue(clients[0].closed)

    def test_sudo_password_fed_on_stdin(self) -> None:
        client = FakeSSHClient()
        session = SSHSession(  # type: ignore[arg-type]
            SSHCredentials(host="h", username="ops", password="pw"),
            client_factory=lambda: client,
        )
        session.run("sudo systemctl restart meta_main")
        self.assertEqual(client.commands, ["sudo -S systemctl restart meta_main"])
        self.assertEqual(client.stdin.written, ["pw\n"])

    def test_non_zero_exit_is_reported(self) -> None:
        session = SSHSession(  # type: ignore[arg-type]
            SSHCredentials(host="h", username="root", password="pw"),
            client_factory=lambda: FakeSSHClient(status=3),
        )
        result = session.run("false")
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_status, 3)


class CredentialsTests(unittest.TestCase):
    def test_from_node_prefers_password(self) -> None:
        creds = SSHCredentials.from_node(Node(name="n", host="h", password="pw", key_path="/k"))
        self.assertEqual(creds.auth_method, "password")

    def test_from_node_key_auth(self) -> None:
        creds = SSHCredentials.from_node(Node(name="n", host="h", port=2200, key_path="/k"))
        self.assertEqual(creds.auth_method, "key")
        self.assertEqual(creds.port, 2200)
        creds.validate()

    def test_validate_rejects_missing_password(self) -> None:
        with self.assertRaises(ValueError):
            SSHCredentials(host="h", username="root").validate()


if __name__ == "__main__":
    unittest.main()
