import json
import logging
import sys
from typing import Any, Dict, NoReturn

import click

from publabel import __version__
from publabel.errors import LabelError
from publabel.labeller import generate as generate_label
from publabel.specs import build_config, load_marker_config

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _fail(payload: Dict[str, Any]) -> NoReturn:
    click.echo(json.dumps(payload))
    sys.exit(2)


@click.group()
@click.version_option(__version__, prog_name="publabel")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="PUBLABEL_LOG_LEVEL",
    help="Logging level for diagnostics on stderr (DEBUG shows each label step)",
)
def cli(log_level):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.option(
    "--publish-path",
    envvar="PUBLABEL_PUBLISH_PATH",
    help="Publish directory holding the marker files (overrides the config file)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help=(
        "JSON marker configuration; a relative publish_path in it is taken from the "
        "file's directory. Without it the single latest.txt marker is used"
    ),
)
@click.option("--json", "as_json", is_flag=True, help="Emit the label as a JSON object")
def generate(publish_path, config_file, as_json):
    """Print the label for the current build.

    Emits a JSON message and exits with code 2 on failure.
    """
    try:
        config = build_config(publish_path, config_file)
        label = generate_label(config)
    except LabelError as exc:
        _fail(exc.payload)
    except OSError as exc:
        _fail({"error": "read_failed", "hint": f"Unexpected filesystem error: {exc}"})

    if as_json:
        click.echo(json.dumps({"ok": True, "label": label}))
    else:
        click.echo(label)


@cli.command("check-config")
@click.argument("config_file", type=click.Path(dir_okay=False))
def check_config(config_file):
    """Validate a marker configuration file and print it normalised.

    Example:
        publabel check-config markers.json
    """
    try:
        parsed = load_marker_config(config_file)
    except LabelError as exc:
        _fail(exc.payload)
    click.echo(json.dumps({"ok": True, "config": parsed.to_dict()}, indent=2))


def cli_entry():
    cli(prog_name="publabel")


if __name__ == "__main__":
    cli_entry()
