from typing import List

import typer

from ..install.locator import resolve_many
from ..install.planner import FilePlanner
from ..provision import ProvisionOptions, TerraformProvisioner
from .common import handle_errors, install_opts, print_header, print_ok


def provision_cmd(
    ctx: typer.Context,
    cluster_names: List[str] = typer.Argument(None, help="Cluster names"),
    allow_destruction: bool = typer.Option(False, "--allow-destruction",
                                           help="Allow nodes to be destroyed when scaling down"),
):
    """Provision the infrastructure described by the plan file."""
    opts = install_opts(ctx)
    with handle_errors():
        for paths in resolve_many(cluster_names or [], opts.plan_file, opts.generated_dir):
            planner = FilePlanner(paths.plan_file, paths.generated_dir)
            plan = planner.read()
            print_header(f"Provisioning {plan.cluster.name}")
            provisioner = TerraformProvisioner(state_dir=paths.generated_dir)
            updated = provisioner.provision(plan, ProvisionOptions(allow_destruction=allow_destruction))
            planner.write(updated)
            print_ok(f"Infrastructure for {plan.cluster.name} provisioned, plan file updated")


def destroy_cmd(
    ctx: typer.Context,
    cluster_names: List[str] = typer.Argument(None, help="Cluster names"),
):
    """Destroy the infrastructure created for the cluster."""
    opts = install_opts(ctx)
    with handle_errors():
        for paths in resolve_many(cluster_names or [], opts.plan_file, opts.generated_dir):
            plan = FilePlanner(paths.plan_file, paths.generated_dir).read()
            print_header(f"Destroying {plan.cluster.name}")
            provisioner = TerraformProvisioner(state_dir=paths.generated_dir)
            provisioner.destroy(plan.provisioner.provider, plan.cluster.name)
            print_ok(f"Infrastructure for {plan.cluster.name} destroyed")
