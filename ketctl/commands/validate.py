from typing import List

import typer

from ..install.executor import new_executor
from ..install.locator import resolve_many
from ..install.planner import FilePlanner
from .common import check_output_format, do_validate, handle_errors, install_opts


def validate_cmd(
    ctx: typer.Context,
    cluster_names: List[str] = typer.Argument(None, help="Cluster names"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging from the installation"),
    output: str = typer.Option("simple", "--output", "-o", callback=check_output_format,
                               help="Installation output format (options simple|raw)"),
    skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Skip pre-flight checks"),
):
    """Validate your plan file."""
    opts = install_opts(ctx)
    with handle_errors():
        for paths in resolve_many(cluster_names or [], opts.plan_file, opts.generated_dir):
            planner = FilePlanner(paths.plan_file, paths.generated_dir)
            executor = new_executor(paths.generated_dir, verbose=verbose, output_format=output)
            do_validate(planner, executor, skip_preflight=skip_preflight)
