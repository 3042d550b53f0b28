import typer

from ..install.locator import CLUSTERS_DIR, list_clusters


def clusters_cmd(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show modification time of each cluster"),
):
    """List the clusters managed from this directory."""
    clusters = [c for c in list_clusters() if c.is_dir]
    if not clusters:
        typer.echo(f"No clusters found in {CLUSTERS_DIR}/")
        return
    for info in clusters:
        if verbose:
            typer.echo(f"{info.name:<30} {info.modified:%Y-%m-%d %H:%M:%S}")
        else:
            typer.echo(info.name)
