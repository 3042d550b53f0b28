import logging
import sys

import typer

from ketctl.commands import clusters, install
from ketctl.config import Config
from ketctl.logging import setup_logger

app = typer.Typer(help="ketctl - Kubernetes cluster installation from a plan file")

# Global debug flag
debug_mode = False


def setup_logging(debug: bool = False):
    """Configure logging based on debug mode."""
    level = logging.DEBUG if debug else getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)
    setup_logger("ketctl", level)
    # Disable debug logging for noisy libraries
    if not debug:
        logging.getLogger("paramiko").setLevel(logging.WARNING)


app.add_typer(install.app, name="install")
app.command("clusters")(clusters.clusters_cmd)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """ketctl - Kubernetes cluster installation from a plan file."""
    global debug_mode
    debug_mode = debug
    setup_logging(debug)
    if debug:
        logging.getLogger("ketctl").debug("Debug mode enabled")


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        logger = logging.getLogger("ketctl")
        if debug_mode:
            logger.exception(f"Unhandled exception: {e}")
        else:
            logger.error(f"Error: {e}")
        sys.exit(1)
