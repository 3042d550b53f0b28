import io

import pytest

from ketctl.errors import ParseError
from ketctl.install.defaults import KUBERNETES_VERSION, apply_defaults
from ketctl.install.migrate import migrate
from ketctl.install.plan import NFSVolume
from ketctl.install.serializer import annotate, dump_plan, read_plan, write_plan


def test_round_trip(valid_plan):
    assert read_plan(dump_plan(valid_plan)) == apply_defaults(migrate(valid_plan))


def test_round_trip_keeps_numeric_looking_strings(valid_plan):
    valid_plan.cluster.admin_password = "123456"
    valid_plan.docker.storage.direct_lvm_block_device.thinpool_percent = "90"
    plan = read_plan(dump_plan(valid_plan))
    assert plan.cluster.admin_password == "123456"
    assert plan.docker.storage.direct_lvm_block_device.thinpool_percent == "90"


def test_empty_document_is_defaulted():
    plan = read_plan(b"")
    assert plan.cluster.version == KUBERNETES_VERSION
    assert plan.add_ons.cni.provider == "calico"


def test_legacy_document_is_migrated_on_read():
    plan = read_plan(
        "cluster:\n"
        "  name: legacy\n"
        "  allow_package_installation: false\n"
        "features:\n"
        "  package_manager:\n"
        "    enabled: true\n"
    )
    assert plan.cluster.disable_package_installation is True
    assert plan.add_ons.package_manager.provider == "helm"
    text = dump_plan(plan)
    assert "features" not in text
    assert "allow_package_installation" not in text


@pytest.mark.parametrize("data", [
    "cluster: [",
    "- a\n- b\n",
    "just a string",
    "cluster:\n  ssh:\n    ssh_port: twenty-two\n",
])
def test_invalid_documents(data):
    with pytest.raises(ParseError):
        read_plan(data)


def test_comments_precede_their_keys(valid_plan):
    lines = dump_plan(valid_plan).splitlines()
    i = lines.index("  admin_password: secret")
    assert lines[i - 2] == "  # This password is used to login to the Kubernetes Dashboard and can also be"
    assert lines[i - 1] == "  # used for administration without a security certificate."
    j = lines.index("    pod_cidr_block: 172.16.0.0/16")
    assert lines[j - 1].startswith("    # ")


def test_first_line_is_not_blank(valid_plan):
    text = dump_plan(valid_plan)
    assert not text.startswith("\n")
    assert text.splitlines()[0] == "cluster:"


def test_comment_written_once_per_path(valid_plan):
    valid_plan.nfs.volumes = [NFSVolume(host="nfs01", path="/a"), NFSVolume(host="nfs02", path="/b")]
    valid_plan.etcd.nodes.append(valid_plan.master.nodes[0])
    text = dump_plan(valid_plan)
    assert text.count("# The host name or ip address of an NFS server.") == 1
    assert text.count("# Provide the hostname and IP of each node.") == 1


def test_etcd_labels_are_not_written(valid_plan):
    text = dump_plan(valid_plan)
    etcd_block = text.split("\netcd:\n")[1].split("\nmaster:")[0]
    assert "labels" not in etcd_block
    worker_block = text.split("\nworker:\n")[1]
    assert "labels: {}" in worker_block


def test_etcd_labels_with_values_are_written(valid_plan):
    valid_plan.etcd.nodes[0].labels = {"zone": "a"}
    plan = read_plan(dump_plan(valid_plan))
    assert plan.etcd.nodes[0].labels == {"zone": "a"}


def test_annotate_blank_line_when_leaving_block():
    assert annotate("a:\n  b: 1\nc: 2\n", comments={}) == "a:\n  b: 1\n\nc: 2\n"


def test_annotate_comment_after_block():
    text = annotate("a:\n  b: 1\nc: 2\n", comments={"c": ("about c",)})
    assert text == "a:\n  b: 1\n\n# about c\nc: 2\n"


def test_annotate_nested_comment():
    text = annotate("a:\n  b: 1\n", comments={"a.b": ("about b",)})
    assert text == "a:\n\n  # about b\n  b: 1\n"


def test_annotate_sequence_items():
    text = annotate(
        "x:\n  items:\n    - name: a\n      value: 1\n    - name: b\n      value: 2\n",
        comments={"x.items.value": ("the value",)},
    )
    lines = text.splitlines()
    assert lines.count("      # the value") == 1
    assert lines[lines.index("      # the value") + 1] == "      value: 1"


def test_write_plan_to_stream(valid_plan):
    out = io.StringIO()
    write_plan(valid_plan, out)
    assert out.getvalue() == dump_plan(valid_plan)


@pytest.mark.parametrize("data, field, expected", [
    ("docker:\n  logs:\n    driver: json-file\n    opts:\n      max-file: 3\n",
     lambda p: p.docker.logs.opts["max-file"], "3"),
    ("docker:\n  storage:\n    direct_lvm_block_device:\n      thinpool_percent: 90\n",
     lambda p: p.docker.storage.direct_lvm_block_device.thinpool_percent, "90"),
    ("worker:\n  nodes:\n    - host: w1\n      ip: 10.0.0.1\n      labels: {rack: 1}\n",
     lambda p: p.worker.nodes[0].labels, {"rack": "1"}),
    ("cluster:\n  version: 1.10\n",
     lambda p: p.cluster.version, "1.10"),
    ("docker:\n  storage:\n    opts:\n      dm.use_deferred_removal: true\n",
     lambda p: p.docker.storage.opts["dm.use_deferred_removal"], "true"),
])
def test_unquoted_scalars_in_string_fields_keep_their_text(data, field, expected):
    assert field(read_plan(data)) == expected


def test_unquoted_scalars_in_typed_fields():
    plan = read_plan(
        "cluster:\n"
        "  disable_package_installation: yes\n"
        "  ssh:\n"
        "    ssh_port: 2222\n"
        "worker:\n"
        "  expected_count: 1\n"
    )
    assert plan.cluster.disable_package_installation is True
    assert plan.cluster.ssh.port == 2222
    assert plan.worker.expected_count == 1


def test_hand_edited_version_survives_rewrite():
    plan = read_plan("cluster:\n  version: 1.10\n")
    assert read_plan(dump_plan(plan)).cluster.version == "1.10"


def test_unknown_keys_are_written_back():
    plan = read_plan(
        "cluster:\n"
        "  name: test\n"
        "  kubelet:\n"
        "    option_overrides:\n"
        "      max-pods: 110\n"
        "worker:\n"
        "  expected_count: 1\n"
        "  nodes:\n"
        "    - host: w1\n"
        "      ip: 10.0.0.1\n"
        "      taints:\n"
        "        - key: dedicated\n"
        "          effect: NoSchedule\n"
    )
    text = dump_plan(plan)
    assert "max-pods: 110" in text
    assert "taints:" in text

    reloaded = read_plan(text)
    assert reloaded == plan
    assert reloaded.cluster.model_extra["kubelet"] == {"option_overrides": {"max-pods": 110}}
    assert reloaded.worker.nodes[0].model_extra["taints"] == [{"key": "dedicated", "effect": "NoSchedule"}]
