"""Resolution of a cluster's plan file and generated assets directory.

Every command that accepts a cluster identity resolves it here, so the same
inputs map to the same paths whatever command runs.
"""
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..errors import ConflictingArgumentsError

CLUSTERS_DIR = "clusters"
PLAN_FILE_NAME = "kismatic-cluster.yaml"
GENERATED_DIR_NAME = "generated"
DEFAULT_CLUSTER_NAME = "kubernetes"

DEFAULT_PLAN_FILE = os.path.join(CLUSTERS_DIR, DEFAULT_CLUSTER_NAME, PLAN_FILE_NAME)
DEFAULT_GENERATED_DIR = os.path.join(CLUSTERS_DIR, DEFAULT_CLUSTER_NAME, GENERATED_DIR_NAME)


@dataclass(frozen=True)
class ClusterPaths:
    plan_file: str
    generated_dir: str


@dataclass(frozen=True)
class ClusterInfo:
    name: str
    modified: datetime
    is_dir: bool


def cluster_paths(name: str) -> ClusterPaths:
    """Conventional paths of a named cluster."""
    return ClusterPaths(
        plan_file=os.path.join(CLUSTERS_DIR, name, PLAN_FILE_NAME),
        generated_dir=os.path.join(CLUSTERS_DIR, name, GENERATED_DIR_NAME),
    )


def _is_default(path: str, default: str) -> bool:
    return os.path.normpath(path) == os.path.normpath(default)


def resolve(
    cluster_name: Optional[str] = None,
    plan_file: str = DEFAULT_PLAN_FILE,
    generated_dir: str = DEFAULT_GENERATED_DIR,
) -> ClusterPaths:
    """Resolve the plan file and generated assets directory.

    A cluster name cannot be combined with explicit paths. When only one path
    is given the other is placed next to it.

    Raises:
        ConflictingArgumentsError: If a name is combined with a path flag
    """
    custom_plan = not _is_default(plan_file, DEFAULT_PLAN_FILE)
    custom_generated = not _is_default(generated_dir, DEFAULT_GENERATED_DIR)

    if cluster_name:
        if custom_plan or custom_generated:
            raise ConflictingArgumentsError(
                "cannot specify clusters by name and by plan file or generated dir flags"
            )
        return cluster_paths(cluster_name)

    if custom_plan and custom_generated:
        return ClusterPaths(plan_file=plan_file, generated_dir=generated_dir)
    if custom_generated:
        parent = os.path.dirname(generated_dir)
        return ClusterPaths(plan_file=os.path.join(parent, PLAN_FILE_NAME), generated_dir=generated_dir)
    if custom_plan:
        parent = os.path.dirname(plan_file)
        return ClusterPaths(plan_file=plan_file, generated_dir=os.path.join(parent, GENERATED_DIR_NAME))
    return ClusterPaths(plan_file=DEFAULT_PLAN_FILE, generated_dir=DEFAULT_GENERATED_DIR)


def resolve_many(
    cluster_names: Sequence[str] = (),
    plan_file: str = DEFAULT_PLAN_FILE,
    generated_dir: str = DEFAULT_GENERATED_DIR,
) -> List[ClusterPaths]:
    """Resolve paths for each named cluster, or for the path flags when no name is given."""
    if not cluster_names:
        return [resolve(None, plan_file, generated_dir)]
    return [resolve(name, plan_file, generated_dir) for name in cluster_names]


def cluster_exists(name: str) -> bool:
    return os.path.isdir(os.path.join(CLUSTERS_DIR, name))


def list_clusters() -> List[ClusterInfo]:
    """Entries of the clusters directory, sorted by name."""
    if not os.path.isdir(CLUSTERS_DIR):
        return []
    clusters = []
    for entry in sorted(os.scandir(CLUSTERS_DIR), key=lambda e: e.name):
        clusters.append(ClusterInfo(
            name=entry.name,
            modified=datetime.fromtimestamp(entry.stat().st_mtime),
            is_dir=entry.is_dir(),
        ))
    return clusters
