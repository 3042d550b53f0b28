from typing import List, Optional, Sequence, Tuple

import typer

from ..errors import PlanError, ValidationError
from ..install.admission import ensure_node_is_new
from ..install.executor import NODE_ROLES, Executor, new_executor
from ..install.locator import cluster_exists, resolve
from ..install.plan import Node
from ..install.planner import FilePlanner, Planner
from ..install.validate import validate_node, validate_plan, validate_ssh_connection
from ..utils import is_valid_ip, parse_labels
from .common import (
    check_output_format,
    handle_errors,
    install_opts,
    print_header,
    print_ok,
    split_csv,
)


def parse_node_args(args: Sequence[str]) -> Tuple[Optional[str], Node]:
    """Split ``[CLUSTER_NAME] NODE_NAME NODE_IP [NODE_INTERNAL_IP]`` into a cluster name and a node.

    With three arguments the last one decides the form: an IP address after
    another IP address is the internal IP, otherwise the first argument is the
    cluster name.
    """
    if len(args) < 2 or len(args) > 4:
        raise typer.BadParameter(
            "expected [CLUSTER_NAME] NODE_NAME NODE_IP [NODE_INTERNAL_IP], "
            f"got {len(args)} argument(s)")
    if len(args) == 2:
        return None, Node(host=args[0], ip=args[1])
    if len(args) == 4:
        return args[0], Node(host=args[1], ip=args[2], internal_ip=args[3])
    if is_valid_ip(args[1]) and is_valid_ip(args[2]):
        return None, Node(host=args[0], ip=args[1], internal_ip=args[2])
    return args[0], Node(host=args[1], ip=args[2])


def do_add_node(
    planner: Planner,
    executor: Executor,
    node: Node,
    roles: Sequence[str],
    restart_services: bool = False,
    skip_preflight: bool = False,
):
    """Admit a new node into the plan, install it and persist the updated plan."""
    unknown = [r for r in roles if r not in NODE_ROLES]
    if unknown:
        raise PlanError(f"invalid role(s) {', '.join(unknown)}, options are {', '.join(NODE_ROLES)}")

    plan = planner.read()

    ok, errors = validate_node(node)
    if not ok:
        raise ValidationError("information provided about the new node is invalid", errors)
    ok, errors = validate_plan(plan)
    if not ok:
        raise ValidationError("the plan file failed validation", errors)

    ensure_node_is_new(plan, node)
    print_ok("Node is not yet part of the cluster")

    ok, errors = validate_ssh_connection(plan.cluster.ssh, node, "New node")
    if not ok:
        raise ValidationError("could not establish SSH connection to the new node", errors)
    print_ok("Validating SSH connectivity to the new node")

    if not skip_preflight:
        print_header("Running Pre-Flight Checks On New Node")
        executor.run_new_node_preflight_check(plan, node)

    print_header(f"Adding node {node.host} to the cluster")
    updated = executor.add_node(plan, node, roles, restart_services)
    planner.write(updated)
    print_ok(f"Node {node.host} added to the cluster as {', '.join(roles)}")
    return updated


def add_node_cmd(
    ctx: typer.Context,
    args: List[str] = typer.Argument(..., metavar="[CLUSTER_NAME] NODE_NAME NODE_IP [NODE_INTERNAL_IP]"),
    roles: List[str] = typer.Option(["worker"], "--roles", help="Roles separated by ',' (options worker|ingress|storage)"),
    labels: List[str] = typer.Option([], "--labels", "-l", help="Key=value label to apply to the node, may be repeated"),
    restart_services: bool = typer.Option(False, "--restart-services",
                                          help="Force restart cluster services (Use with care)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging from the installation"),
    output: str = typer.Option("simple", "--output", "-o", callback=check_output_format,
                               help="Installation output format (options simple|raw)"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Skip pre-flight checks"),
):
    """Add a worker node to an existing Kubernetes cluster."""
    opts = install_opts(ctx)
    cluster_name, node = parse_node_args(args)
    try:
        node.labels = parse_labels(split_csv(labels))
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--labels")

    with handle_errors():
        if cluster_name and not cluster_exists(cluster_name):
            raise PlanError(f"cluster {cluster_name!r} does not exist")
        paths = resolve(cluster_name, opts.plan_file, opts.generated_dir)
        planner = FilePlanner(paths.plan_file, paths.generated_dir)
        executor = new_executor(paths.generated_dir, verbose=verbose, output_format=output)
        do_add_node(planner, executor, node, split_csv(roles), restart_services, skip_preflight)
