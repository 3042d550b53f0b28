import pytest

from ketctl.install.defaults import PlanTemplateOptions, build_from_template
from ketctl.install.executor import Executor
from ketctl.install.plan import Node


class FakeExecutor(Executor):
    """Records calls instead of running ansible-playbook."""

    def __init__(self):
        self.calls = []

    def run_play(self, task, plan, restart_services=False):
        self.calls.append(("run_play", task))

    def install(self, plan, restart_services=False):
        self.calls.append(("install", restart_services))

    def run_preflight_check(self, plan):
        self.calls.append(("preflight",))

    def run_new_node_preflight_check(self, plan, node):
        self.calls.append(("new_node_preflight", node.host))

    def run_smoke_test(self, plan):
        self.calls.append(("smoke_test",))

    def generate_certificates(self, plan, force=False):
        self.calls.append(("certificates", force))

    def validate_certificates(self, plan):
        return True, []

    def add_node(self, plan, node, roles, restart_services=False):
        self.calls.append(("add_node", node.host, tuple(roles)))
        updated = plan.model_copy(deep=True)
        for role in roles:
            updated.pool(role).nodes.append(node)
            updated.pool(role).expected_count += 1
        return updated


@pytest.fixture
def ssh_key(tmp_path):
    key = tmp_path / "id_rsa"
    key.write_text("not a real key")
    return key


@pytest.fixture
def valid_plan(ssh_key):
    plan = build_from_template(PlanTemplateOptions(
        cluster_name="test",
        etcd_nodes=1,
        master_nodes=1,
        worker_nodes=1,
        admin_password="secret",
    ))
    plan.cluster.ssh.user = "kismaticuser"
    plan.cluster.ssh.key = str(ssh_key)
    plan.etcd.nodes = [Node(host="etcd01", ip="10.0.0.1")]
    plan.master.nodes = [Node(host="master01", ip="10.0.0.2")]
    plan.master.load_balanced_fqdn = "10.0.0.2"
    plan.master.load_balanced_short_name = "10.0.0.2"
    plan.worker.nodes = [Node(host="worker01", ip="10.0.0.3", internal_ip="192.168.0.3")]
    return plan


@pytest.fixture
def fake_executor():
    return FakeExecutor()
