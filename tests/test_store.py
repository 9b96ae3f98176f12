from __future__ import annotations

import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from utils.store import list_runs, load_json, load_run, save_run


def test_save_and_load_run(tmp_path):
    path = save_run("abc", {"success": True, "personas": []}, data_dir=tmp_path)
    assert path == tmp_path / "runs" / "abc.json"
    assert load_run("abc", data_dir=tmp_path) == {"success": True, "personas": []}
    assert list_runs(data_dir=tmp_path) == ["abc"]


def test_missing_run(tmp_path):
    assert load_run("nope", data_dir=tmp_path) is None
    assert load_json("x.json", default={}, data_dir=tmp_path) == {}
    assert list_runs(data_dir=tmp_path) == []
