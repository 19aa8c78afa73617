"""Plain-text rendering shared by the CLI and run-spec output."""

from __future__ import annotations

from core.types import Dataset, Page


def format_dataset_row(dataset: Dataset) -> str:
    """Render one dataset as ``id, row_count, column_count, name`` tab-separated."""
    return f"{dataset.dataset_id}\t{dataset.row_count}\t{dataset.column_count}\t{dataset.name}"


def format_page_lines(page: Page) -> tuple[str, ...]:
    """Render a page as header, rows, and a trailing position summary."""
    lines = ["\t".join(page.columns)]
    lines.extend("\t".join(row) for row in page.rows)
    lines.append(f"page={page.page_index}/{page.total_pages} rows={page.total_rows}")
    return tuple(lines)
