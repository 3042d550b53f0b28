import pytest
from typer.testing import CliRunner

from ketctl.cli import app
from ketctl.commands import add_node, apply, common, validate
from ketctl.commands.add_node import parse_node_args
from ketctl.install.locator import DEFAULT_PLAN_FILE
from ketctl.install.planner import FilePlanner

runner = CliRunner()

PLAN_COUNTS = [
    "--etcd-nodes", "1", "--master-nodes", "1", "--worker-nodes", "2",
    "--ingress-nodes", "0", "--storage-nodes", "0", "--nfs-volumes", "0",
]


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def installed_plan(workdir, valid_plan, fake_executor, monkeypatch):
    FilePlanner(DEFAULT_PLAN_FILE).write(valid_plan)
    for module in (validate, apply, add_node):
        monkeypatch.setattr(module, "new_executor", lambda *args, **kwargs: fake_executor)
    monkeypatch.setattr(common, "validate_plan_ssh_connections", lambda plan: (True, []))
    monkeypatch.setattr(add_node, "validate_ssh_connection", lambda ssh, node, label: (True, []))
    return valid_plan


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "install" in result.output
    assert "clusters" in result.output


def test_install_commands_exist():
    result = runner.invoke(app, ["install", "--help"])
    for command in ("plan", "validate", "apply", "add-node", "step", "provision", "destroy"):
        assert command in result.output


def test_plan_writes_template(workdir):
    result = runner.invoke(app, ["install", "plan", *PLAN_COUNTS])
    assert result.exit_code == 0, result.output
    plan = FilePlanner(workdir / DEFAULT_PLAN_FILE).read()
    assert plan.cluster.name == "kubernetes"
    assert plan.worker.expected_count == 2
    assert len(plan.cluster.admin_password) == 16


def test_plan_for_named_cluster(workdir):
    result = runner.invoke(app, ["install", "plan", "prod", *PLAN_COUNTS])
    assert result.exit_code == 0, result.output
    plan = FilePlanner(workdir / "clusters" / "prod" / "kismatic-cluster.yaml").read()
    assert plan.cluster.name == "prod"


def test_plan_refuses_to_overwrite(workdir):
    runner.invoke(app, ["install", "plan", *PLAN_COUNTS])
    result = runner.invoke(app, ["install", "plan", *PLAN_COUNTS])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_name_and_path_flags_conflict(workdir):
    result = runner.invoke(app, ["install", "-f", "other.yaml", "plan", "prod", *PLAN_COUNTS])
    assert result.exit_code == 1


def test_validate_missing_plan(workdir):
    result = runner.invoke(app, ["install", "validate"])
    assert result.exit_code == 1
    assert "ketctl install plan" in result.output


def test_validate(installed_plan, fake_executor):
    result = runner.invoke(app, ["install", "validate"])
    assert result.exit_code == 0, result.output
    assert ("preflight",) in fake_executor.calls


def test_validate_invalid_plan(workdir, fake_executor, monkeypatch):
    runner.invoke(app, ["install", "plan", *PLAN_COUNTS])
    monkeypatch.setattr(validate, "new_executor", lambda *args, **kwargs: fake_executor)
    result = runner.invoke(app, ["install", "validate"])
    assert result.exit_code == 1
    assert "Plan file validation error" in result.output
    assert fake_executor.calls == []


def test_apply(installed_plan, fake_executor):
    result = runner.invoke(app, ["install", "apply", "--skip-preflight"])
    assert result.exit_code == 0, result.output
    assert [c[0] for c in fake_executor.calls] == ["certificates", "install", "smoke_test"]


def test_apply_bad_output_format(installed_plan):
    result = runner.invoke(app, ["install", "apply", "-o", "json"])
    assert result.exit_code != 0


def test_add_node(installed_plan, fake_executor, workdir):
    result = runner.invoke(app, [
        "install", "add-node", "worker02", "10.0.0.4",
        "--roles", "worker,ingress", "--labels", "zone=a", "--skip-preflight",
    ])
    assert result.exit_code == 0, result.output
    assert ("add_node", "worker02", ("worker", "ingress")) in fake_executor.calls
    plan = FilePlanner(workdir / DEFAULT_PLAN_FILE).read()
    assert [n.host for n in plan.worker.nodes] == ["worker01", "worker02"]
    assert plan.ingress.nodes[0].labels == {"zone": "a"}


def test_add_node_duplicate_host(installed_plan, fake_executor):
    result = runner.invoke(app, ["install", "add-node", "worker01", "10.0.0.99"])
    assert result.exit_code == 1
    assert "host name of the new node is already being used by another worker node" in result.output
    assert fake_executor.calls == []


def test_add_node_invalid_role(installed_plan, fake_executor):
    result = runner.invoke(app, ["install", "add-node", "w9", "10.0.0.9", "--roles", "master"])
    assert result.exit_code == 1
    assert fake_executor.calls == []


def test_add_node_unknown_cluster(workdir):
    result = runner.invoke(app, ["install", "add-node", "staging", "w9", "10.0.0.9"])
    assert result.exit_code == 1
    assert "does not exist" in result.output


@pytest.mark.parametrize("args, cluster, host, ip, internal_ip", [
    (["w1", "10.0.0.1"], None, "w1", "10.0.0.1", ""),
    (["w1", "10.0.0.1", "192.168.0.1"], None, "w1", "10.0.0.1", "192.168.0.1"),
    (["prod", "w1", "10.0.0.1"], "prod", "w1", "10.0.0.1", ""),
    (["prod", "w1", "10.0.0.1", "192.168.0.1"], "prod", "w1", "10.0.0.1", "192.168.0.1"),
])
def test_parse_node_args(args, cluster, host, ip, internal_ip):
    name, node = parse_node_args(args)
    assert name == cluster
    assert (node.host, node.ip, node.internal_ip) == (host, ip, internal_ip)


def test_clusters(workdir):
    (workdir / "clusters" / "prod").mkdir(parents=True)
    (workdir / "clusters" / "dev").mkdir()
    result = runner.invoke(app, ["clusters"])
    assert result.exit_code == 0
    assert result.output.split() == ["dev", "prod"]
