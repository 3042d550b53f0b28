from pathlib import Path
from typing import List

import typer

from ..config import Config
from ..errors import PlanError
from ..install.executor import new_executor
from ..install.locator import resolve_many
from ..install.planner import FilePlanner
from .common import check_output_format, do_validate, handle_errors, install_opts, print_header, print_ok


def step_cmd(
    ctx: typer.Context,
    args: List[str] = typer.Argument(..., metavar="[CLUSTER_NAME...] PLAY_NAME"),
    restart_services: bool = typer.Option(False, "--restart-services",
                                          help="Force restart cluster services (Use with care)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging from the installation"),
    output: str = typer.Option("simple", "--output", "-o", callback=check_output_format,
                               help="Installation output format (options simple|raw)"),
):
    """Run a specific playbook against the cluster. Use with care."""
    opts = install_opts(ctx)
    *cluster_names, play = args
    playbook = play if play.endswith((".yaml", ".yml")) else f"{play}.yaml"
    with handle_errors():
        if not (Path(Config.ANSIBLE_DIR) / "playbooks" / playbook).is_file():
            raise PlanError(f"playbook {playbook!r} not found in {Config.ANSIBLE_DIR}/playbooks")
        for paths in resolve_many(cluster_names, opts.plan_file, opts.generated_dir):
            planner = FilePlanner(paths.plan_file, paths.generated_dir)
            executor = new_executor(paths.generated_dir, verbose=verbose, output_format=output)
            plan = do_validate(planner, executor, skip_preflight=True)
            print_header(f"Running Task {playbook}")
            executor.run_play(playbook, plan, restart_services)
            print_ok(f"Task {playbook} completed")
