# qregister/cli.py
from qregister.__main__ import app as _typer_app
from qregister.logging_config import setup_logging


def main():
    """Console script entrypoint for the qregister CLI."""
    setup_logging()
    _typer_app()
