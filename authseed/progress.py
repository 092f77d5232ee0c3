from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeRemainingColumn

from authseed.schemas import RunSummary


CALCULATING = "Calculating..."


def calculate_percentage(current: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(current / total * 100, 2)


def estimate_remaining_seconds(processed: int, total: int, elapsed_seconds: float) -> float | None:
    if processed <= 0:
        return None
    if elapsed_seconds <= 0:
        return 0.0
    rate = processed / elapsed_seconds
    return max(total - processed, 0) / rate


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def calculate_eta(processed: int, total: int, elapsed_seconds: float) -> str:
    remaining = estimate_remaining_seconds(processed, total, elapsed_seconds)
    if remaining is None:
        return CALCULATING
    return format_duration(remaining)


def format_number(value: int) -> str:
    return f"{value:,}"


class ProgressReporter:
    """Console output for a seeding run: banner, progress bar, batch lines, summary."""

    def __init__(self, console: Console | None = None, *, quiet: bool = False) -> None:
        self.console = console or Console(quiet=quiet)
        self.quiet = quiet
        self._progress: Progress | None = None
        self._task_id = None

    def start(self, title: str, details: list[str], total: int) -> None:
        self.console.print(f"[bold blue]{title}[/bold blue]")
        for line in details:
            self.console.print(f"[dim]{line}[/dim]")
        self.console.print()

        self._progress = Progress(
            TextColumn("[cyan]Progress:"),
            BarColumn(bar_width=50, complete_style="bright_green"),
            MofNCompleteColumn(),
            TextColumn("[bold bright_cyan]{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            console=self.console,
            disable=self.quiet,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("seeding", total=total)

    def advance(self, count: int) -> None:
        if self._progress is not None and count:
            self._progress.update(self._task_id, advance=count)

    def batch_completed(self, message: str, *, processed: int, total: int, eta: str) -> None:
        percentage = calculate_percentage(processed, total)
        self.console.print(f"[green]✅ {message}[/green]")
        self.console.print(f"[dim]   Total: {format_number(processed)}/{format_number(total)} ({percentage}%)[/dim]")
        self.console.print(f"[dim]   ETA: {eta}[/dim]")

    def batch_failed(self, batch_number: int, error: Exception) -> None:
        self.console.print(f"[bold red]❌ Batch {batch_number} failed:[/bold red] [red]{escape(str(error))}[/red]")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def finish(self, summary: RunSummary, *, title: str, error_hint: list[str] | None = None) -> None:
        self.stop()
        body = (
            f"[green]✅ Successfully created: {format_number(summary.processed_count)} users[/green]\n"
            f"[red]❌ Errors: {format_number(summary.error_count)}[/red]\n"
            f"[dim]⏱️  Duration: {format_duration(summary.duration_seconds)}[/dim]\n"
            f"[dim]📊 Rate: {format_number(summary.users_per_minute)} users/minute[/dim]"
        )
        self.console.print()
        self.console.print(Panel(body, title=f"[bold blue]{title}[/bold blue]", border_style="blue", box=box.SIMPLE))
        if summary.error_count > 0 and error_hint:
            for line in error_hint:
                self.console.print(f"[yellow]{line}[/yellow]")
