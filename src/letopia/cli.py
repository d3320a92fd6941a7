"""
Letopia interactive shell
=========================
Chat with the roadmap agent; slash commands drive everything else.

  /test               Batch throughput test (prompts for a request count)
  /save [md|json] [path]   Structure the conversation as a Roadmap and save it
  /new                Start a new conversation thread
  /help               Show commands
  /exit, /quit        Leave

Run:
    letopia            (console script)
    python -m letopia
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from letopia import __version__
from letopia.batch_probe import run_batch_probe
from letopia.config import Settings, get_settings
from letopia.formatters import save_json, save_markdown
from letopia.roadmap_agent import RoadmapAgentService

logger = logging.getLogger(__name__)

DEFAULT_TEST_REQUESTS = 10

COMMANDS = [
    ("/test",                  "Run the batch rate-limit test against the chat endpoint"),
    ("/save [md|json] [path]", "Save the current roadmap as Markdown (default) or JSON"),
    ("/new",                   "Start a new conversation"),
    ("/help",                  "Show this help"),
    ("/exit",                  "Quit"),
]


def parse_request_count(raw: Optional[str], default: int = DEFAULT_TEST_REQUESTS) -> int:
    """Blank, unparseable or non-positive input falls back to ``default``."""
    try:
        count = int((raw or "").strip())
    except ValueError:
        return default
    return count if count > 0 else default


def parse_save_args(args: list[str]) -> tuple[str, Path]:
    """Return (format, path) for ``/save``; format is 'md' or 'json'."""
    fmt: Optional[str] = None
    path: Optional[Path] = None
    for arg in args:
        lowered = arg.lower()
        if lowered in ("md", "markdown"):
            fmt = "md"
        elif lowered == "json":
            fmt = "json"
        else:
            path = Path(arg)
    if fmt is None:
        fmt = "json" if path is not None and path.suffix.lower() == ".json" else "md"
    return fmt, path or Path(f"roadmap.{fmt}")


class LetopiaShell:
    def __init__(
        self,
        settings: Settings,
        agent: Optional[RoadmapAgentService] = None,
        console: Optional[Console] = None,
        ask: Optional[Callable[..., str]] = None,
    ) -> None:
        self.settings = settings
        self.agent    = agent
        self.console  = console or Console()
        self._ask     = ask or Prompt.ask
        self.thread   = agent.new_thread() if agent is not None else None

    # ── Display ──────────────────────────────────────────────────────────────

    def show_banner(self) -> None:
        c = self.console
        c.print()
        c.print(Panel(
            "[bold magenta]Letopia — Learning Roadmap Agent[/bold magenta]",
            subtitle=f"v{__version__} · type /help for commands",
            expand=False,
        ))
        status = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
        status.add_column("Service", style="bold cyan", no_wrap=True)
        status.add_column("Status")
        for service, badge in self.settings.status_summary().items():
            status.add_row(service, badge)
        status.add_row("Model", self.settings.github.model_id)
        status.add_row("Mode", "live" if self.settings.live_mode else "[yellow]mock[/yellow]")
        status.add_row("Batch limits", self._batch_limits())
        c.print(status)

    def _batch_limits(self) -> str:
        b = self.settings.batch
        try:
            delay = b.batch_delay_seconds
        except ValueError as exc:
            return f"[red]invalid: {exc}[/red]"
        return (
            f"{b.max_concurrent_requests} concurrent · {b.requests_per_minute} req/min · "
            f"batches of {b.batch_size}, {delay:g}s apart"
        )

    def show_help(self) -> None:
        table = Table(box=box.ROUNDED, show_header=False)
        table.add_column("Command", style="bold cyan", no_wrap=True)
        table.add_column("Description")
        for cmd, desc in COMMANDS:
            table.add_row(cmd, desc)
        self.console.print(table)

    # ── Commands ─────────────────────────────────────────────────────────────

    def handle(self, line: str) -> bool:
        """Process one input line.  Returns False when the shell should exit."""
        text = line.strip()
        if not text:
            return True
        if not text.startswith("/"):
            self.chat(text)
            return True

        command, *args = text.split()
        command = command.lower()
        if command in ("/exit", "/quit"):
            return False
        if command == "/help":
            self.show_help()
        elif command == "/new":
            self.new_thread()
        elif command == "/test":
            self.run_test()
        elif command == "/save":
            self.save(args)
        else:
            self.console.print(f"[yellow]Unknown command {command}. Type /help.[/yellow]")
        return True

    def chat(self, text: str) -> None:
        if self.agent is None:
            self.console.print(
                "[yellow]⚠ Chat needs GITHUB_TOKEN; running in mock mode (only /test works).[/yellow]"
            )
            return
        self.console.print("[bold green]Letopia:[/bold green] ", end="")
        try:
            for chunk in self.agent.run_streaming(text, self.thread):
                self.console.out(chunk, end="", highlight=False)
            self.console.print()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Agent call failed")
            self.console.print()
            self.console.print(f"✗ Agent error: {exc}", style="red", markup=False, highlight=False)

    def new_thread(self) -> None:
        if self.agent is not None:
            self.thread = self.agent.new_thread()
        self.console.print("[green]✓ Started a new conversation.[/green]")

    def run_test(self) -> None:
        raw   = self._ask("How many requests?", default=str(DEFAULT_TEST_REQUESTS), console=self.console)
        count = parse_request_count(raw)
        try:
            run_batch_probe(count, settings=self.settings, console=self.console)
        except (EnvironmentError, ValueError) as exc:
            self.console.print(f"[red]✗ Batch test not started:[/red] {exc}")
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Batch test cancelled.[/yellow]")

    def save(self, args: list[str]) -> None:
        if self.agent is None or self.thread is None:
            self.console.print("[yellow]⚠ Saving needs a live agent (set GITHUB_TOKEN).[/yellow]")
            return
        fmt, path = parse_save_args(args)
        try:
            with self.console.status("[bold blue]Structuring roadmap…"):
                roadmap = self.agent.extract_roadmap(self.thread)
        except (ValueError, ValidationError) as exc:
            self.console.print(f"[red]✗ Could not build roadmap:[/red] {exc}")
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Roadmap extraction failed")
            self.console.print(f"✗ Agent error: {exc}", style="red", markup=False, highlight=False)
            return
        written = save_json(roadmap, path) if fmt == "json" else save_markdown(roadmap, path)
        missing = len(roadmap.resources_missing_urls())
        self.console.print(f"[bold green]✓ Saved[/bold green] {written}")
        if missing:
            self.console.print(f"[dim]{missing} resource(s) have no verified URL.[/dim]")

    # ── Loop ─────────────────────────────────────────────────────────────────

    def run(self) -> int:
        self.show_banner()
        while True:
            try:
                line = self._ask("\n[bold cyan]You[/bold cyan]", console=self.console)
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                break
            if not self.handle(line):
                break
        self.console.print("[dim]Goodbye.[/dim]")
        return 0


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.app.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    console = Console()

    if not settings.live_mode and not settings.app.force_mock_mode:
        console.print("[red]Error: GITHUB_TOKEN is not configured![/red]")
        console.print("Set it in your environment or .env file, e.g. [bold]GITHUB_TOKEN=ghp_...[/bold]")
        console.print("[dim]Or set FORCE_MOCK_MODE=true to try /test with a simulated endpoint.[/dim]")
        return 1

    agent = RoadmapAgentService(settings) if settings.live_mode else None
    return LetopiaShell(settings, agent, console).run()


if __name__ == "__main__":
    sys.exit(main())
