"""
demo_batch.py – Batch rate-limit demo without the interactive shell

Run:
    python demo_batch.py [N]            # N requests, default 10

Uses the real GitHub Models endpoint when GITHUB_TOKEN is set, otherwise
(or with FORCE_MOCK_MODE=true) a simulated endpoint with random latency
and occasional 429 responses.
"""

from __future__ import annotations

import sys
from pathlib import Path

# ── make src/ importable without installing the package ──────────────────────
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from letopia.batch_probe import run_batch_probe
from letopia.cli import parse_request_count
from letopia.outcomes import OutcomeKind, RunSummary

console = Console()

# ─── Colour map for outcome kinds ────────────────────────────────────────────
KIND_STYLE = {
    OutcomeKind.SUCCESS:          "bold green",
    OutcomeKind.SUCCESS_ON_RETRY: "bold cyan",
    OutcomeKind.RATE_LIMITED:     "bold yellow",
    OutcomeKind.QUOTA_EXCEEDED:   "bold magenta",
    OutcomeKind.OTHER_FAILURE:    "bold red",
}


def show_outcomes(summary: RunSummary) -> None:
    """Per-request table after the run."""
    table = Table(box=box.SIMPLE_HEAD, header_style="bold white on dark_violet", padding=(0, 1))
    table.add_column("Request", justify="right")
    table.add_column("Outcome", min_width=18)
    table.add_column("Latency", justify="right")
    table.add_column("Message", style="dim white")

    for o in summary.outcomes:
        style = KIND_STYLE.get(o.kind, "white")
        table.add_row(
            str(o.request_id),
            f"[{style}]{o.kind.value.replace('_', ' ')}[/{style}]",
            f"{o.latency_ms} ms",
            o.message,
        )
    console.print(Panel(table, title="[bold]Request Outcomes[/bold]", border_style="blue"))


def main() -> None:
    total = parse_request_count(sys.argv[1] if len(sys.argv) > 1 else "")
    console.print()
    console.print(Panel(
        "[bold]Letopia — Batch Rate-Limit Demo[/bold]\n"
        f"[dim]{total} request(s)  •  concurrency + per-minute quota + retry-once[/dim]",
        style="on dark_violet",
        expand=False,
    ))

    try:
        summary = run_batch_probe(total, console=console)
        show_outcomes(summary)

    except EnvironmentError as e:
        console.print(f"\n[bold red]Configuration error:[/bold red] {e}")
        console.print("[dim]Create a .env file based on .env.example and retry.[/dim]")
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
