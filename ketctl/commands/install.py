import typer

from ..install.locator import DEFAULT_GENERATED_DIR, DEFAULT_PLAN_FILE
from . import add_node, apply, plan, provision, step, validate
from .common import InstallOpts

app = typer.Typer(help="Install your Kubernetes cluster", no_args_is_help=True)


@app.callback()
def install_callback(
    ctx: typer.Context,
    plan_file: str = typer.Option(DEFAULT_PLAN_FILE, "--plan-file", "-f",
                                  help="Path to the installation plan file"),
    generated_dir: str = typer.Option(DEFAULT_GENERATED_DIR, "--generated-assets-dir", "-g",
                                      help="Path to the directory where assets generated during the installation process will be stored"),
):
    ctx.obj = InstallOpts(plan_file=plan_file, generated_dir=generated_dir)


app.command("plan")(plan.plan_cmd)
app.command("validate")(validate.validate_cmd)
app.command("apply")(apply.apply_cmd)
app.command("add-node")(add_node.add_node_cmd)
app.command("step")(step.step_cmd)
app.command("provision")(provision.provision_cmd)
app.command("destroy")(provision.destroy_cmd)
