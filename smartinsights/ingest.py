from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from smartinsights.sampling import count_data_rows, split_csv_lines

CSV_ENCODINGS = ("utf-8-sig", "utf-8", "cp1252", "latin-1")
SUPPORTED_EXTENSIONS = {".csv"}


@dataclass
class Dataset:
    filename: str
    csv_text: str
    headers: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return count_data_rows(self.csv_text)

    def describe(self) -> dict[str, Any]:
        return {"filename": self.filename, "headers": self.headers, "rows": self.row_count}


def _strip_cell(cell: str) -> str:
    return cell.strip().strip('"')


def parse_headers(csv_text: str) -> list[str]:
    header, _ = split_csv_lines(csv_text)
    if not header:
        return []
    return [_strip_cell(name) for name in header.split(",")]


def decode_upload(raw: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError("Could not decode CSV with any known encoding.")


def ingest_csv(filename: str, raw: bytes | str) -> Dataset:
    text = decode_upload(raw) if isinstance(raw, bytes) else raw
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    headers = parse_headers(text)
    if not headers:
        raise ValueError("Uploaded file is empty.")
    return Dataset(filename=filename, csv_text=text, headers=headers)


def dataset_from_records(filename: str, records: list[dict[str, Any]]) -> Dataset:
    """Rebuild a dataset from cleaned rows (one dict per row, keyed by header)."""
    if not records:
        raise ValueError("Cleaned data contains no rows.")
    buffer = io.StringIO()
    pd.DataFrame.from_records(records).to_csv(buffer, index=False, lineterminator="\n")
    return ingest_csv(filename, buffer.getvalue())


def preview_rows(dataset: Dataset, rows: int = 10) -> list[list[str]]:
    _, lines = split_csv_lines(dataset.csv_text)
    return [[_strip_cell(cell) for cell in line.split(",")] for line in lines[:rows] if line.strip()]
