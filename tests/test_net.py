import unittest
from unittest import mock

from m3fs_deployer.config import Node
from m3fs_deployer.utils import net


class LocalNodeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.nodes = [
            Node(name="node1", host="10.0.0.1"),
            Node(name="node2", host="10.0.0.2"),
        ]

    def test_single_match(self) -> None:
        node = net.find_local_node(self.nodes, {"127.0.0.1", "10.0.0.2"})
        self.assertIs(node, self.nodes[1])

    def test_no_match(self) -> None:
        self.assertIsNone(net.find_local_node(self.nodes, {"127.0.0.1"}))

    def test_ambiguous_match_is_none(self) -> None:
        nodes = self.nodes + [Node(name="node2-alias", host="10.0.0.2")]
        self.assertIsNone(net.find_local_node(nodes, {"10.0.0.2"}))

    def test_unresolvable_host_is_not_local(self) -> None:
        nodes = [Node(name="ghost", host="ghost.invalid")]
        with mock.patch.object(net.socket, "getaddrinfo", side_effect=OSError("no such host")):
            self.assertIsNone(net.find_local_node(nodes, {"10.0.0.1"}))

    def test_hostname_resolution(self) -> None:
        infos = [(2, 1, 6, "", ("10.0.0.1", 0))]
        with mock.patch.object(net.socket, "getaddrinfo", return_value=infos):
            self.assertTrue(net.is_local_host("node1.cluster", {"10.0.0.1"}))

    def test_get_local_ips_includes_loopback(self) -> None:
        self.assertIn("127.0.0.1", net.get_local_ips())


if __name__ == "__main__":
    unittest.main()
