from __future__ import annotations

import csv
import json

import matplotlib

matplotlib.use("Agg")

from profilecut.cli import main as cli_main
from profilecut.io_csv import export_all, read_items_csv
from profilecut.io_json import dump_job_json, load_job_json
from profilecut.logger import Logger
from profilecut.normalize import normalize_items
from profilecut.orchestrator import Optimizer
from profilecut.plotting import save_plan_png
from profilecut.sample_data import RandomItemsConfig, generate_random_items, total_units
from profilecut.utils import result_to_dict, save_result_json, timer

QUIET = Logger(enabled=False)

ITEMS_CSV = """profile_type,length,qty,work_order_id,color
AL-40x40,1500,3,WO-1,RAL9016
AL-40x40,1000,5,,
"""


def _result(rows):
    items = normalize_items(rows).items
    return Optimizer(logger=QUIET, max_workers=1).optimize("ffd", items, stock_lengths=[6000])


def test_read_items_csv(tmp_path):
    p = tmp_path / "items.csv"
    p.write_text(ITEMS_CSV, encoding="utf-8")

    rows = read_items_csv(p)
    assert rows[0] == {"profileType": "AL-40x40", "length": "1500", "quantity": "3", "workOrderId": "WO-1", "color": "RAL9016"}
    assert rows[1] == {"profileType": "AL-40x40", "length": "1000", "quantity": "5"}

    items = normalize_items(rows).items
    assert [(i.length, i.quantity) for i in items] == [(1500.0, 3), (1000.0, 5)]
    assert items[0].metadata == {"color": "RAL9016"}


def test_job_json_roundtrip_and_stock_length_shortcut(tmp_path):
    p = tmp_path / "job.json"
    dump_job_json({"items": [{"profileType": "AL", "length": 1000}], "stockLength": 6000}, p)
    job = load_job_json(p)
    assert job["stockLengths"] == [6000]


def test_exports(tmp_path):
    rows = generate_random_items(RandomItemsConfig(seed=11, n_unique=8))
    res = _result(rows)

    export_all(res.cuts, res.metrics, tmp_path, prefix="plan", algorithm="ffd")
    with (tmp_path / "plan_segments.csv").open(newline="", encoding="utf-8") as f:
        seg_rows = list(csv.DictReader(f))
    assert sum(int(r["quantity"]) for r in seg_rows) == total_units(rows)
    with (tmp_path / "plan_cuts.csv").open(newline="", encoding="utf-8") as f:
        assert len(list(csv.DictReader(f))) == res.metrics.stock_count
    assert (tmp_path / "plan_summary.csv").exists()

    save_result_json(res, tmp_path / "plan.json")
    data = json.loads((tmp_path / "plan.json").read_text(encoding="utf-8"))
    assert data == json.loads(json.dumps(result_to_dict(res)))
    assert data["metrics"]["stockCount"] == res.metrics.stock_count


def test_plot_png(tmp_path):
    res = _result([{"profileType": "AL", "length": 1500, "quantity": 3}, {"profileType": "AL", "length": 700, "quantity": 4}])
    out = tmp_path / "plan.png"
    save_plan_png(res.cuts, out)
    assert out.stat().st_size > 0


def test_cli_items_csv(tmp_path, capsys):
    p = tmp_path / "items.csv"
    p.write_text(ITEMS_CSV, encoding="utf-8")
    out_dir = tmp_path / "out"

    code = cli_main(
        ["--items", str(p), "--stock", "6000", "--kerf", "5", "--algorithm", "ffd",
         "--workers", "1", "--no_plot", "--out", str(out_dir), "--png", str(tmp_path / "plan.png")]
    )
    printed = capsys.readouterr().out
    assert code == 0
    assert "Stocks used: 2" in printed
    assert (out_dir / "plan.json").exists()
    assert (tmp_path / "plan.png").exists()


def test_cli_compare(tmp_path, capsys):
    p = tmp_path / "items.csv"
    p.write_text(ITEMS_CSV, encoding="utf-8")
    code = cli_main(["--items", str(p), "--stock", "6000", "--compare", "ffd,bfd,pooling", "--workers", "1", "--no_plot"])
    printed = capsys.readouterr().out
    assert code == 0
    assert "1. " in printed


def test_cli_job_uses_material_lengths_and_alternatives(tmp_path, capsys):
    p = tmp_path / "job.json"
    dump_job_json(
        {
            "algorithm": "ffd",
            "items": [{"profileType": "AL-40x40", "length": 1500, "quantity": 3}],
            "stockLengths": [6000],
            "materialStockLengths": [{"profileType": "AL-40x40", "stockLength": 6500, "costPerMm": 0.04}],
            "generateAlternatives": True,
            "maxAlternatives": 1,
        },
        p,
    )
    out_dir = tmp_path / "out"
    code = cli_main(["--job", str(p), "--workers", "1", "--no_plot", "--out", str(out_dir)])
    printed = capsys.readouterr().out
    assert code == 0
    assert "AL-40x40 6500 mm" in printed
    assert "Alternatives:" in printed
    assert "1. bfd:" in printed

    data = json.loads((out_dir / "plan.json").read_text(encoding="utf-8"))
    assert {c["stockLength"] for c in data["cuttingPlan"]} == {6500.0}


def test_cli_mixed_lengths(tmp_path, capsys):
    p = tmp_path / "items.csv"
    p.write_text("profile_type,length,qty\nAL,5900,1\nAL,2000,1\n", encoding="utf-8")
    code = cli_main(["--items", str(p), "--stock", "6000,3000", "--mixed", "--workers", "1", "--no_plot"])
    printed = capsys.readouterr().out
    assert code == 0
    assert "AL 6000 mm" in printed
    assert "AL 3000 mm" in printed


def test_timer():
    with timer("x") as t:
        pass
    assert t["seconds"] >= 0


def test_cli_rejects_non_object_constraints(tmp_path):
    p = tmp_path / "job.json"
    dump_job_json({"items": [{"profileType": "AL", "length": 1000}], "constraints": [1, 2]}, p)
    assert cli_main(["--job", str(p), "--kerf", "4", "--workers", "1", "--no_plot"]) == 2
