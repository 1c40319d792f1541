"""
Score benchmarking.

Places a subject's Aegis composite within the distribution of previously
recorded composites (percentile, summary statistics and a histogram).
"""

import typer
import logging
from typing import Iterable, List, Optional, Union
from rich.table import Table
from .schemas import BenchmarkBucket, BenchmarkResult
from .utils import console, load_json_file, round_half_up, save_or_print_results

logger = logging.getLogger(__name__)

BUCKET_RANGES = ((0, 25), (26, 50), (51, 75), (76, 100))

MIN_HISTORY = 2


def _buckets() -> List[BenchmarkBucket]:
    return [BenchmarkBucket(label=f"{low}-{high}", low=low, high=high) for low, high in BUCKET_RANGES]


def _bucket_index(buckets: List[BenchmarkBucket], score: float) -> int:
    return next((i for i, b in enumerate(buckets) if b.low <= score <= b.high), -1)


def benchmark_score(
    current_score: float, history: Iterable[Optional[Union[int, float]]]
) -> BenchmarkResult:
    """
    Benchmarks a composite score against historical composites.

    Args:
        current_score: The composite being benchmarked.
        history: Previously recorded composites; None entries are ignored.

    Returns:
        BenchmarkResult: Marked insufficient when fewer than two scores exist.
    """
    scores = [s for s in history if s is not None]
    if len(scores) < MIN_HISTORY:
        return BenchmarkResult(insufficient=True, total_assessments=len(scores))

    ordered = sorted(scores)
    below = len([s for s in scores if s < current_score])

    buckets = _buckets()
    for s in scores:
        index = _bucket_index(buckets, s)
        if index >= 0:
            buckets[index].count += 1

    return BenchmarkResult(
        insufficient=False,
        total_assessments=len(scores),
        percentile=round_half_up(below / len(scores) * 100),
        average=round_half_up(sum(scores) / len(scores)),
        median=ordered[len(ordered) // 2],
        min=ordered[0],
        max=ordered[-1],
        buckets=buckets,
        current_bucket=_bucket_index(buckets, current_score),
    )


# --- CLI Application ---

benchmark_app = typer.Typer(
    name="benchmark",
    help="Compare a score against historical assessments."
)


@benchmark_app.command("run")
def run_benchmark(
    score: float = typer.Argument(..., help="The Aegis composite to benchmark."),
    history_file: str = typer.Argument(..., help="Path to a JSON list of past composites or score objects."),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save results to a JSON file."
    ),
):
    """
    Shows where a score falls among previous assessments.
    """
    try:
        raw = load_json_file(history_file)
        if not isinstance(raw, list):
            raise ValueError("History file must contain a JSON list.")
        # Snapshots may be bare numbers or stored score objects.
        entries = [item.get("composite") if isinstance(item, dict) else item for item in raw]
        history = [float(entry) if entry is not None else None for entry in entries]
    except (OSError, ValueError, TypeError) as e:
        logger.error("Could not load score history %s: %s", history_file, e)
        console.print(f"[bold red]Error loading history:[/bold red] {e}")
        raise typer.Exit(code=1)
    result = benchmark_score(score, history)

    if output_file:
        save_or_print_results(result, output_file)
        return

    if result.insufficient:
        console.print(
            f"[yellow]Not enough history to benchmark ({result.total_assessments} assessment(s)).[/yellow]"
        )
        return

    console.print(
        f"\n[bold]Percentile:[/bold] {result.percentile} "
        f"(avg {result.average}, median {result.median:g}, range {result.min:g}-{result.max:g})\n"
    )
    table = Table(title=f"Distribution of {result.total_assessments} Assessments")
    table.add_column("Range", style="cyan")
    table.add_column("Count", style="magenta")
    for i, bucket in enumerate(result.buckets):
        marker = " <- current" if i == result.current_bucket else ""
        table.add_row(bucket.label, f"{bucket.count}{marker}")
    console.print(table)
