from typing import Any, Dict, List, Optional

Record = Dict[str, Any]


def rows_to_records(rows: List[List[Any]]) -> List[Record]:
    """
    Turns sheet rows into dicts keyed by the header row. Short rows are padded with "".
    """
    if not rows or not isinstance(rows[0], list):
        return []
    header, data = rows[0], rows[1:]
    records = []
    for row in data:
        row = row or []
        records.append(
            {
                str(name): (row[i] if i < len(row) and row[i] is not None else "")
                for i, name in enumerate(header)
            }
        )
    return records


def is_blank(value) -> bool:
    return str(value if value is not None else "").strip() == ""


def drop_empty(records: List[Record]) -> List[Record]:
    return [r for r in records if r and not all(is_blank(v) for v in r.values())]


def search(records: List[Record], query: Optional[str]) -> List[Record]:
    """
    Case-insensitive substring match against every field. A blank query matches everything.
    """
    needle = str(query or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if any(needle in str(v).lower() for v in r.values())]


def is_true(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value if value is not None else "").strip().lower() == "true"


def completed(records: List[Record]) -> List[Record]:
    return [r for r in records if is_true(r.get("Completed"))]


def pending(records: List[Record]) -> List[Record]:
    return [r for r in records if not is_true(r.get("Completed"))]


def find_record(records: List[Record], device: Optional[str]) -> Optional[Record]:
    key = str(device or "").strip().lower()
    if not key:
        return None
    for record in records:
        if str(record.get("Device", "")).strip().lower() == key:
            return record
    return None


def progress(records: List[Record]) -> int:
    if not records:
        return 0
    # Halves round up, so 1 of 8 reads as 13%.
    return int(len(completed(records)) / len(records) * 100 + 0.5)


def model_name(record: Record) -> str:
    return record.get("*Model Name") or record.get("Model Name") or ""
