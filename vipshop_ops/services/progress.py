from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One tqdm bar tracks workbooks; sheets inside a workbook get a one-line
status print. Both are disabled when stdout is not a TTY so that CI logs
and piped output stay free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "SheetProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Workbook-level progress bar.

    Usable as a context manager; the bar is closed on exit.
    """

    def __init__(self, total_files: int, *, description: str = "Importing workbooks") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True) -> None:
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        """Show running counters (imported rows, rejected sheets, ...)."""
        if self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class SheetProgressIndicator:
    """Prints ``Sheet i/n: name - k rows ✓`` lines for one workbook."""

    def __init__(self, file_name: str, total_sheets: int) -> None:
        self.file_name = file_name
        self.total_sheets = total_sheets
        self.current_sheet = 0
        self.enabled = is_tty_enabled()

    def start_sheet(self, sheet_name: str) -> None:
        self.current_sheet += 1
        if self.enabled:
            print(f"  Sheet {self.current_sheet}/{self.total_sheets}: {sheet_name}", end="", flush=True)

    def finish_sheet(self, success: bool = True, rows_processed: int = 0, entity: str | None = None) -> None:
        if not self.enabled:
            return
        status = "✓" if success else "✗"
        label = f" [{entity}]" if entity else ""
        if rows_processed > 0:
            print(f"{label} - {rows_processed} rows {status}")
        else:
            print(f"{label} {status}")
