import json
from pathlib import Path
from typing import Any, List

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
RUNS_DIR = "runs"

def save_json(rel_path: str, obj: Any, data_dir: Path = None) -> Path:
    p = (data_dir or DATA_DIR) / rel_path
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2, default=str)
    return p

def load_json(rel_path: str, default=None, data_dir: Path = None):
    p = (data_dir or DATA_DIR) / rel_path
    if not p.exists():
        return default
    with open(p, "r", encoding="utf-8") as f:
        return json.load(f)

def save_run(session_id: str, result: Any, data_dir: Path = None) -> Path:
    """Keep one JSON file per generation run (success or failure) for later lookup."""
    return save_json(f"{RUNS_DIR}/{session_id}.json", result, data_dir)

def load_run(session_id: str, data_dir: Path = None):
    return load_json(f"{RUNS_DIR}/{session_id}.json", data_dir=data_dir)

def list_runs(data_dir: Path = None) -> List[str]:
    d = (data_dir or DATA_DIR) / RUNS_DIR
    if not d.exists():
        return []
    return sorted(p.stem for p in d.glob("*.json"))
