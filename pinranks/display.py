"""Rich rendering of a user's rankings."""

from rich import box
from rich.console import Console
from rich.table import Table

from pinranks.models import BASE_SCORE, FilterCategory, Group, RatingRecord
from pinranks.rating.rankings import ranked_group_ids

console = Console()


def create_rankings_table(
    record: RatingRecord,
    groups: list[Group],
    category: FilterCategory | None = None,
    top_n: int = 25,
) -> Table:
    """Create a Rich table of a user's ranked groups."""
    label = str(category) if category else "All"
    table = Table(
        title=f"[bold cyan]Your Rankings: {label}[/bold cyan]",
        box=box.ROUNDED,
        show_lines=False,
        header_style="bold magenta",
        title_justify="left",
    )

    table.add_column("Rank", style="dim", width=5, justify="center")
    table.add_column("Elo", style="yellow", width=14, justify="right")
    table.add_column("Machine", style="cyan", max_width=50, overflow="ellipsis")

    names = {g.id: g.display_name for g in groups}
    ordered = ranked_group_ids(record, category)

    for i, group_id in enumerate(ordered[:top_n], 1):
        score = record[group_id].score(category)
        diff = score - BASE_SCORE
        if diff > 0:
            elo_str = f"[green]{score}[/green] [dim](+{diff})[/dim]"
        elif diff < 0:
            elo_str = f"[red]{score}[/red] [dim]({diff})[/dim]"
        else:
            elo_str = str(score)
        table.add_row(str(i), elo_str, names.get(group_id, group_id))

    if len(ordered) > top_n:
        table.add_row("...", "", f"[dim]and {len(ordered) - top_n} more machines[/dim]")

    return table


def print_rankings(
    record: RatingRecord,
    groups: list[Group],
    category: FilterCategory | None = None,
    top_n: int = 25,
) -> None:
    console.print(create_rankings_table(record, groups, category, top_n))
