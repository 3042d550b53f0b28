"""
Installation plan management.

This package provides the plan model, its migration and defaulting, the
annotated YAML serializer, plan stores, cluster path resolution and the
checks guarding changes to the node inventory.
"""

from .plan import Node, Plan, POOLS
from .migrate import migrate
from .defaults import PlanTemplateOptions, apply_defaults, build_from_template
from .serializer import dump_plan, read_plan, write_plan
from .planner import BytesPlanner, FilePlanner, Planner, write_plan_template
from .locator import ClusterPaths, cluster_exists, list_clusters, resolve, resolve_many
from .admission import ensure_node_is_new
from .validate import (
    validate_node,
    validate_plan,
    validate_plan_ssh_connections,
    validate_ssh_connection,
)

__all__ = [
    # Model
    'Node',
    'Plan',
    'POOLS',
    'PlanTemplateOptions',

    # Migration and defaults
    'migrate',
    'apply_defaults',
    'build_from_template',

    # Serialization and storage
    'read_plan',
    'write_plan',
    'dump_plan',
    'Planner',
    'FilePlanner',
    'BytesPlanner',
    'write_plan_template',

    # Cluster paths
    'ClusterPaths',
    'resolve',
    'resolve_many',
    'cluster_exists',
    'list_clusters',

    # Checks
    'ensure_node_is_new',
    'validate_node',
    'validate_plan',
    'validate_ssh_connection',
    'validate_plan_ssh_connections',
]
