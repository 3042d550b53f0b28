import paramiko

from ketctl.install.plan import Node, SSHConfig
from ketctl.install.validate import (
    validate_node,
    validate_plan,
    validate_plan_ssh_connections,
    validate_ssh_connection,
)


def test_valid_plan(valid_plan):
    assert validate_plan(valid_plan) == (True, [])


def test_errors_are_aggregated(valid_plan):
    valid_plan.cluster.name = ""
    valid_plan.cluster.networking.pod_cidr_block = "not-a-cidr"
    valid_plan.worker.expected_count = 2

    ok, errors = validate_plan(valid_plan)
    assert not ok
    assert "cluster.name is required" in errors
    assert any("pod_cidr_block" in e for e in errors)
    assert any("worker: expected 2 nodes but 1 are defined" in e for e in errors)


def test_overlapping_cidrs(valid_plan):
    valid_plan.cluster.networking.service_cidr_block = "172.16.128.0/24"
    ok, errors = validate_plan(valid_plan)
    assert not ok
    assert "cluster.networking pod and service CIDR blocks overlap" in errors


def test_missing_ssh_key(valid_plan, tmp_path):
    valid_plan.cluster.ssh.key = str(tmp_path / "nope")
    ok, errors = validate_plan(valid_plan)
    assert not ok
    assert any("ssh_key" in e for e in errors)


def test_template_nodes_must_be_filled_in(valid_plan):
    valid_plan.worker.nodes = [Node()]
    ok, errors = validate_plan(valid_plan)
    assert not ok
    assert "worker node 0: Node host field is required" in errors


def test_empty_package_manager_provider_is_valid(valid_plan):
    valid_plan.add_ons.package_manager.provider = ""
    assert validate_plan(valid_plan)[0]


def test_unknown_cni_provider(valid_plan):
    valid_plan.add_ons.cni.provider = "flannel"
    ok, errors = validate_plan(valid_plan)
    assert not ok
    assert any(e.startswith("add_ons.cni.provider") for e in errors)


def test_validate_node():
    assert validate_node(Node(host="w1", ip="10.0.0.1")) == (True, [])
    ok, errors = validate_node(Node(host="", ip="300.1.1.1", internal_ip="x"))
    assert not ok
    assert len(errors) == 3


def test_ssh_connection_failure(monkeypatch):
    def refuse(self, **kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr(paramiko.SSHClient, "connect", refuse)
    ok, errors = validate_ssh_connection(SSHConfig(user="u", key="/k", port=22), Node(host="w1", ip="10.0.0.1"))
    assert not ok
    assert "connection refused" in errors[0]


def test_ssh_each_node_checked_once(monkeypatch, valid_plan):
    hosts = []

    def connect(self, hostname, **kwargs):
        hosts.append(hostname)

    monkeypatch.setattr(paramiko.SSHClient, "connect", connect)
    valid_plan.etcd.nodes = [valid_plan.master.nodes[0]]
    assert validate_plan_ssh_connections(valid_plan) == (True, [])
    assert hosts == ["10.0.0.2", "10.0.0.3"]
