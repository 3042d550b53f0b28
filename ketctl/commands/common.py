"""Helpers shared by the install commands."""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, List

import typer

from ..errors import MissingPlanError, PlanError, ValidationError
from ..install.executor import Executor
from ..install.locator import DEFAULT_GENERATED_DIR, DEFAULT_PLAN_FILE
from ..install.plan import Plan
from ..install.planner import Planner
from ..install.validate import validate_plan, validate_plan_ssh_connections

logger = logging.getLogger("ketctl.commands")

OUTPUT_FORMATS = ("simple", "raw")


@dataclass
class InstallOpts:
    """Path flags shared by every install subcommand."""
    plan_file: str = DEFAULT_PLAN_FILE
    generated_dir: str = DEFAULT_GENERATED_DIR


def install_opts(ctx: typer.Context) -> InstallOpts:
    return ctx.obj if isinstance(ctx.obj, InstallOpts) else InstallOpts()


def split_csv(values: Iterable[str]) -> List[str]:
    """Flatten repeated and comma separated option values."""
    return [v.strip() for value in values for v in value.split(",") if v.strip()]


def check_output_format(value: str) -> str:
    if value not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"options {'|'.join(OUTPUT_FORMATS)}")
    return value


def print_header(message: str) -> None:
    typer.echo(f"\n{message}")
    typer.echo("=" * len(message))


def print_ok(message: str) -> None:
    typer.secho(f"✅ {message}", fg=typer.colors.GREEN)


def print_err(message: str) -> None:
    typer.secho(f"❌ {message}", fg=typer.colors.RED, err=True)


@contextmanager
def handle_errors():
    """Report plan errors and exit with status 1."""
    try:
        yield
    except PlanError as e:
        logger.debug("Command failed", exc_info=True)
        print_err(str(e))
        raise typer.Exit(code=1)


def do_validate(planner: Planner, executor: Executor, skip_preflight: bool = False) -> Plan:
    """Read the plan and run every validation step, then the pre-flight checks."""
    print_header("Validating")
    if not planner.exists():
        raise MissingPlanError(str(getattr(planner, "plan_file", "")))
    plan = planner.read()
    print_ok("Reading installation plan file")

    ok, errors = validate_plan(plan)
    if not ok:
        raise ValidationError("Plan file validation error prevents installation from proceeding", errors)
    print_ok("Validating installation plan file")

    ok, errors = validate_plan_ssh_connections(plan)
    if not ok:
        raise ValidationError("SSH connectivity validation error prevents installation from proceeding", errors)
    print_ok("Validating SSH connectivity to nodes")

    ok, errors = executor.validate_certificates(plan)
    if not ok:
        raise ValidationError("Cluster certificates validation error prevents installation from proceeding", errors)
    print_ok("Validating cluster certificates")

    if not skip_preflight:
        print_header("Running Pre-Flight Checks")
        executor.run_preflight_check(plan)
        print_ok("Pre-flight checks passed")
    return plan
