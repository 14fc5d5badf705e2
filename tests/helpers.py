import copy
import json
from pathlib import Path

SAMPLE_LEDGER = Path(__file__).resolve().parent.parent / "sample_ledger.json"


def write_ledger(tmp_path: Path, data: dict, filename: str = "ledger.json") -> Path:
    path = tmp_path / filename
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def clone_ledger(data: dict) -> dict:
    return copy.deepcopy(data)
