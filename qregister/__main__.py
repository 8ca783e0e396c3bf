# qregister/__main__.py
from __future__ import annotations

from collections import Counter
from typing import List, Optional

import numpy as np
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from qregister.backends import get_backend
from qregister.bitstr import BitStr, bit
from qregister.errors import RegisterError
from qregister.logging_config import setup_logging
from qregister.measure import measure, measure_remove
from qregister.measure import seed as reseed
from qregister.register import AbstractRegister, RegisterBackend

setup_logging()

app = typer.Typer(help="Quantum register CLI")
console = Console()


def _backend(name: str | None) -> RegisterBackend:
    try:
        return get_backend(name)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--backend") from e


def _bits(text: str) -> BitStr:
    try:
        return bit(text)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="BITS") from e


def _label(value: int, width: int) -> str:
    return format(int(value), f"0{width}b") if width else "-"


def _print_register(reg: AbstractRegister) -> None:
    console.print(f"[bold magenta]{reg.summary()}[/bold magenta]")
    console.print(f"    active qubits: {reg.nactive}/{reg.nqubits}")


@app.command()
def info(
    bits: str = typer.Argument(..., help="Basis state, e.g. 0110 (qubit 0 is the rightmost bit)"),
    backend: Optional[str] = typer.Option(None, help="Backend: numpy, qiskit or stim (default: settings.BACKEND)"),
    nbatch: int = typer.Option(1, min=1, help="Number of batches"),
):
    """
    Build a product state and show its probabilities.
    """
    config = _bits(bits)
    try:
        reg = _backend(backend).product_state(config, nbatch=nbatch)
        p = reg.probs()
    except RegisterError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)

    _print_register(reg)
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("state", justify="right")
    for b in range(reg.nbatch):
        table.add_column(f"batch {b}", justify="right")
    for k in range(p.shape[1]):
        if np.all(p[:, k] == 0):
            continue
        table.add_row(_label(k, reg.nactive), *(f"{x:.4f}" for x in p[:, k]))
    console.print(table)


@app.command("measure")
def measure_cmd(
    bits: str = typer.Argument(..., help="Basis state to prepare, e.g. 0110"),
    locs: Optional[List[int]] = typer.Option(None, "--locs", help="Qubit to measure (repeatable, default: all)"),
    backend: Optional[str] = typer.Option(None, help="Backend: numpy, qiskit or stim (default: settings.BACKEND)"),
    shots: int = typer.Option(1, min=1, help="Number of shots"),
    remove: bool = typer.Option(False, help="Remove the measured qubits after each shot"),
    uniform: bool = typer.Option(False, help="Prepare the uniform superposition instead of BITS"),
    seed: Optional[int] = typer.Option(None, help="Random seed (default: settings.SEED)"),
):
    """
    Measure a freshly prepared register and tabulate the outcomes.
    """
    config = _bits(bits)
    factory = _backend(backend)
    if seed is not None:
        reseed(seed)
    locs = list(locs or [])

    def prepare() -> AbstractRegister:
        if uniform:
            return factory.uniform_state(config.length)
        return factory.product_state(config)

    try:
        if remove:
            outcomes = []
            for _ in range(shots):
                reg = prepare()
                outcomes.append(int(measure_remove(reg, *locs, )[0]))
        else:
            reg = prepare()
            outcomes = [int(x) for x in measure(reg, *locs, nshots=shots)[:, 0]]
    except RegisterError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)

    width = len(locs) if locs else config.length
    counts = Counter(outcomes)
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("outcome", justify="right")
    table.add_column("count", justify="right")
    table.add_column("frequency", justify="right")
    for value in sorted(counts):
        table.add_row(_label(value, width), str(counts[value]), f"{counts[value] / shots:.3f}")
    console.print(table)
    if remove:
        _print_register(reg)


if __name__ == "__main__":
    app()
