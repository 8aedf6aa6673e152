"""Application logging setup and tabular logs written to Excel.

``configure_logging`` installs the rotating log file used by the CLI.
``ExcelLogger`` writes row-shaped records (import reports, rejected rows,
errors) to a workbook so they can be reviewed in a spreadsheet.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Protocol, Sequence

LOG_FILENAME = "gstbill.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(log_dir: Path, *, level: int = logging.INFO) -> logging.Logger:
    """Attach a rotating file handler to the ``gstbill`` logger.

    Calling it again with another directory moves the log there.
    """

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = Path(os.path.abspath(log_dir / LOG_FILENAME))
    logger = logging.getLogger("gstbill")

    existing = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    if not any(Path(h.baseFilename) == log_file for h in existing):
        for old in existing:
            logger.removeHandler(old)
            old.close()
        handler = RotatingFileHandler(
            log_file,
            maxBytes=1_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(level)

    logging.captureWarnings(True)
    return logger


class RowLike(Protocol):
    """Anything that can be written as one spreadsheet row."""

    def as_cells(self) -> Iterable[object]:
        """Return the ordered cell values."""


@dataclass(slots=True)
class ExcelLoggerConfig:
    """Configuration used by :class:`ExcelLogger`."""

    columns: Sequence[str]
    filename: str = "gstbill-log.xlsx"
    sheet_title: str = "Log"


class ExcelLogger:
    """Write records to an Excel workbook with :mod:`openpyxl`.

    Each call to :meth:`write_rows` creates a fresh workbook with the header
    from :class:`ExcelLoggerConfig` followed by the given rows.
    """

    def __init__(self, config: ExcelLoggerConfig) -> None:
        self.config = config

    def write_rows(self, rows: Iterable[RowLike | Iterable[object]]) -> Path:
        """Persist ``rows`` and return the path of the workbook."""

        from openpyxl import Workbook

        destination = Path(self.config.filename)
        destination.parent.mkdir(parents=True, exist_ok=True)

        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = self.config.sheet_title

        if self.config.columns:
            worksheet.append(list(self.config.columns))

        for row in rows:
            if hasattr(row, "as_cells"):
                cells = list(row.as_cells())  # type: ignore[union-attr]
            else:
                cells = list(row)  # type: ignore[arg-type]
            worksheet.append(cells)

        workbook.save(destination)
        return destination


__all__ = ["ExcelLogger", "ExcelLoggerConfig", "LOG_FILENAME", "RowLike", "configure_logging"]
