from typing import Optional

import typer

from ..errors import PlanError
from ..install.defaults import PlanTemplateOptions
from ..install.locator import DEFAULT_CLUSTER_NAME, resolve
from ..install.planner import FilePlanner, write_plan_template
from ..utils import generate_password
from .common import handle_errors, install_opts, print_ok


def plan_cmd(
    ctx: typer.Context,
    cluster_name: Optional[str] = typer.Argument(None, help="Cluster name"),
    provider: str = typer.Option("", "--provider", help="Infrastructure provisioner (e.g. aws, azure)"),
    etcd_nodes: int = typer.Option(3, "--etcd-nodes", min=1, prompt="Number of etcd nodes"),
    master_nodes: int = typer.Option(2, "--master-nodes", min=1, prompt="Number of master nodes"),
    worker_nodes: int = typer.Option(3, "--worker-nodes", min=1, prompt="Number of worker nodes"),
    ingress_nodes: int = typer.Option(2, "--ingress-nodes", min=0, prompt="Number of ingress nodes"),
    storage_nodes: int = typer.Option(0, "--storage-nodes", min=0, prompt="Number of storage nodes"),
    nfs_volumes: int = typer.Option(0, "--nfs-volumes", min=0, prompt="Number of existing NFS volumes to be attached"),
):
    """Plan your Kubernetes cluster and generate a plan file."""
    opts = install_opts(ctx)
    with handle_errors():
        paths = resolve(cluster_name, opts.plan_file, opts.generated_dir)
        planner = FilePlanner(paths.plan_file, paths.generated_dir)
        if planner.exists():
            raise PlanError(f"Plan file already exists at {paths.plan_file!r}")

        template = PlanTemplateOptions(
            cluster_name=cluster_name or DEFAULT_CLUSTER_NAME,
            infrastructure_provisioner=provider,
            etcd_nodes=etcd_nodes,
            master_nodes=master_nodes,
            worker_nodes=worker_nodes,
            ingress_nodes=ingress_nodes,
            storage_nodes=storage_nodes,
            nfs_volumes=nfs_volumes,
            admin_password=generate_password(),
        )
        write_plan_template(template, planner)

    print_ok(f"Generated installation plan file at {paths.plan_file!r}")
    typer.echo("Edit the plan file to further describe your cluster. "
               "Once ready, execute the 'install validate' command to proceed.")
