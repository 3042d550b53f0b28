from typing import List

import typer

from ..install.executor import Executor, new_executor
from ..install.locator import resolve_many
from ..install.planner import FilePlanner, Planner
from .common import (
    check_output_format,
    do_validate,
    handle_errors,
    install_opts,
    print_header,
    print_ok,
)


def run_apply(
    planner: Planner,
    executor: Executor,
    generated_dir: str,
    restart_services: bool = False,
    skip_preflight: bool = False,
) -> None:
    plan = do_validate(planner, executor, skip_preflight=skip_preflight)

    print_header("Generating Certificates")
    executor.generate_certificates(plan, False)

    print_header("Installing Cluster")
    executor.install(plan, restart_services)

    if plan.network_configured():
        print_header("Running Smoke Test")
        executor.run_smoke_test(plan)

    print_ok("The cluster was installed successfully!")
    typer.echo(f"- To use the generated kubeconfig file with kubectl:\n"
               f"    * use \"kubectl --kubeconfig {generated_dir}/kubeconfig\"\n"
               f"    * or copy the config file \"cp {generated_dir}/kubeconfig ~/.kube/config\"")


def apply_cmd(
    ctx: typer.Context,
    cluster_names: List[str] = typer.Argument(None, help="Cluster names"),
    restart_services: bool = typer.Option(False, "--restart-services",
                                          help="Force restart cluster services (Use with care)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging from the installation"),
    output: str = typer.Option("simple", "--output", "-o", callback=check_output_format,
                               help="Installation output format (options simple|raw)"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight",
                                        help="Skip pre-flight checks, useful when rerunning"),
):
    """Apply your plan file to create a Kubernetes cluster."""
    opts = install_opts(ctx)
    with handle_errors():
        for paths in resolve_many(cluster_names or [], opts.plan_file, opts.generated_dir):
            planner = FilePlanner(paths.plan_file, paths.generated_dir)
            executor = new_executor(paths.generated_dir, verbose=verbose, output_format=output)
            run_apply(planner, executor, paths.generated_dir, restart_services, skip_preflight)
