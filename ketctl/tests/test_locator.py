import pytest

from ketctl.errors import ConflictingArgumentsError
from ketctl.install.locator import (
    DEFAULT_GENERATED_DIR,
    DEFAULT_PLAN_FILE,
    ClusterPaths,
    cluster_exists,
    list_clusters,
    resolve,
    resolve_many,
)


def test_resolve_by_name():
    assert resolve("prod") == ClusterPaths(
        plan_file="clusters/prod/kismatic-cluster.yaml",
        generated_dir="clusters/prod/generated",
    )


def test_resolve_defaults():
    assert resolve() == ClusterPaths(DEFAULT_PLAN_FILE, DEFAULT_GENERATED_DIR)


def test_equivalent_default_paths_are_defaults():
    paths = resolve("prod", plan_file="./clusters/kubernetes/kismatic-cluster.yaml")
    assert paths.plan_file == "clusters/prod/kismatic-cluster.yaml"


def test_generated_dir_only():
    assert resolve(generated_dir="/tmp/g") == ClusterPaths(
        plan_file="/tmp/kismatic-cluster.yaml",
        generated_dir="/tmp/g",
    )


def test_plan_file_only():
    assert resolve(plan_file="/tmp/p/plan.yaml") == ClusterPaths(
        plan_file="/tmp/p/plan.yaml",
        generated_dir="/tmp/p/generated",
    )


def test_both_paths_given():
    assert resolve(plan_file="a/plan.yaml", generated_dir="b/out") == ClusterPaths("a/plan.yaml", "b/out")


@pytest.mark.parametrize("flags", [
    {"plan_file": "other.yaml"},
    {"generated_dir": "/tmp/g"},
])
def test_name_conflicts_with_path_flags(flags):
    with pytest.raises(ConflictingArgumentsError):
        resolve("prod", **flags)


def test_resolve_many():
    assert [p.plan_file for p in resolve_many(["a", "b"])] == [
        "clusters/a/kismatic-cluster.yaml",
        "clusters/b/kismatic-cluster.yaml",
    ]
    assert resolve_many([]) == [resolve()]


def test_list_clusters(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert list_clusters() == []
    (tmp_path / "clusters" / "prod").mkdir(parents=True)
    (tmp_path / "clusters" / "dev").mkdir()
    (tmp_path / "clusters" / "README").write_text("notes")

    clusters = list_clusters()
    assert [c.name for c in clusters] == ["README", "dev", "prod"]
    assert [c.is_dir for c in clusters] == [False, True, True]
    assert cluster_exists("prod")
    assert not cluster_exists("staging")
