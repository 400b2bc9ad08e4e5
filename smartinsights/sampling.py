from __future__ import annotations


def split_csv_lines(csv_text: str) -> tuple[str, list[str]]:
    """Return the header line and the data lines of a CSV document."""
    text = csv_text.strip()
    if not text:
        return "", []
    lines = text.split("\n")
    return lines[0], lines[1:]


def sample_csv(csv_text: str, max_rows: int) -> str:
    """
    Keep the header and the first ``max_rows`` data lines.

    Row order and row content are preserved verbatim so the sample can be
    sent to the model as-is.
    """
    if max_rows < 0:
        raise ValueError("max_rows must be >= 0")
    header, rows = split_csv_lines(csv_text)
    if not header:
        return ""
    return "\n".join([header, *rows[:max_rows]])


def count_data_rows(csv_text: str) -> int:
    return len(split_csv_lines(csv_text)[1])
