# src/notescribe/run_index.py
from __future__ import annotations
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
import csv
import hashlib
import json
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class MigrationRecord:
    """
    Outcome of migrating and validating one page file, for audit.
    """

    file_name: str  # basename e.g. "page_0012.md"
    file_path: str  # absolute path
    sha256_before: str
    sha256_after: str  # equals sha256_before on a dry run or no change
    syntax_before: str  # tag | bracket | mixed | none
    changes: int  # directives rewritten
    issues: int  # validation issues after migration
    written: bool
    created_at_iso: str  # ISO8601
    tool_version: str


def content_sha256(data: bytes) -> str:
    """
    Hex SHA-256 of page bytes, used to key report rows by file content.
    """
    return hashlib.sha256(data).hexdigest()


# CSV field order follows the dataclass
_CSV_FIELDS = [f.name for f in fields(MigrationRecord)]


def _csv_path(report_dir: Path) -> Path:
    return report_dir / "migrations.csv"


def _jsonl_path(report_dir: Path) -> Path:
    return report_dir / "migrations.jsonl"


def _key(rec: MigrationRecord) -> Tuple[str, str]:
    """
    Unique by (file_path, sha256_before)
    """
    return (rec.file_path, rec.sha256_before)


def _read_csv(path: Path) -> Dict[Tuple[str, str], MigrationRecord]:
    """
    Read existing CSV, return dict keyed by (file_path, sha256_before).
    """
    out: Dict[Tuple[str, str], MigrationRecord] = {}
    if not path.exists():
        return out
    with path.open("r", encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            try:
                rec = MigrationRecord(
                    file_name=row["file_name"],
                    file_path=row["file_path"],
                    sha256_before=row["sha256_before"],
                    sha256_after=row["sha256_after"],
                    syntax_before=row["syntax_before"],
                    changes=int(row["changes"]),
                    issues=int(row["issues"]),
                    written=row["written"] == "True",
                    created_at_iso=row["created_at_iso"],
                    tool_version=row["tool_version"],
                )
                out[_key(rec)] = rec
            except (KeyError, ValueError):
                # NOTE: ignore malformed rows
                continue
    return out


def _write_csv_atomic(path: Path, records: List[MigrationRecord]) -> None:
    """
    Write CSV atomically by writing to a temp file and renaming.
    """
    tmp = path.with_suffix(".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with tmp.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
        w.writeheader()
        for rec in records:
            w.writerow(asdict(rec))
    tmp.replace(path)


def upsert_record(report_dir: Path, rec: MigrationRecord) -> None:
    """
    Ensure 'migrations.csv' and 'migrations.jsonl' reflect this file.
    - CSV: upsert (dedup by file_path+sha256_before)
    - JSONL: append for audit (no dedup)
    """
    report_dir.mkdir(parents=True, exist_ok=True)

    csv_path = _csv_path(report_dir)
    existing = _read_csv(csv_path)
    existing[_key(rec)] = rec
    _write_csv_atomic(csv_path, list(existing.values()))

    with _jsonl_path(report_dir).open("a", encoding="utf-8") as f:
        f.write(json.dumps(asdict(rec), ensure_ascii=False))
        f.write("\n")


def read_records(report_dir: Path) -> List[MigrationRecord]:
    return list(_read_csv(_csv_path(report_dir)).values())


def make_record(
    *,
    path: Path,
    sha256_before: str,
    sha256_after: str,
    syntax_before: str,
    changes: int,
    issues: int,
    written: bool,
    tool_version: str,
) -> MigrationRecord:
    path = path.resolve()
    return MigrationRecord(
        file_name=path.name,
        file_path=str(path),
        sha256_before=sha256_before,
        sha256_after=sha256_after,
        syntax_before=syntax_before,
        changes=changes,
        issues=issues,
        written=written,
        created_at_iso=datetime.now(tz=timezone.utc).isoformat(),
        tool_version=tool_version,
    )
