from __future__ import annotations

import pickle

import pytest

from profilecut.constraints import resolve_constraints
from profilecut.errors import InternalFault, ValidationError, as_error_dict
from profilecut.logger import Logger
from profilecut.normalize import normalize_item, normalize_items
from profilecut.types import Priority

QUIET = Logger(enabled=False)


def test_camel_and_snake_rows():
    res = normalize_items(
        [
            {"profileType": "AL-40x40", "length": "1500", "quantity": 3, "workOrderId": "WO-1", "color": "RAL9016"},
            {"profile_type": " AL-20x20 ", "length": 800.5, "priority": "HIGH", "metadata": {"workOrderId": 77}},
        ]
    )
    a, b = res.items
    assert res.ok
    assert (a.profile_type, a.length, a.quantity, a.work_order_id) == ("AL-40x40", 1500.0, 3, "WO-1")
    assert a.metadata == {"color": "RAL9016"}
    assert a.total_length == 4500.0
    assert b.profile_type == "AL-20x20"
    assert b.quantity == 1
    assert b.priority is Priority.HIGH
    assert b.work_order_id == "77"
    assert b.original_index == 1


@pytest.mark.parametrize(
    "row, field",
    [
        ({"length": 1000}, "profileType"),
        ({"profileType": "AL"}, "length"),
        ({"profileType": "AL", "length": 5}, "length"),
        ({"profileType": "AL", "length": 25000}, "length"),
        ({"profileType": "AL", "length": "abc"}, "length"),
        ({"profileType": "AL", "length": 1000, "quantity": 0}, "quantity"),
        ({"profileType": "AL", "length": 1000, "quantity": 1001}, "quantity"),
        ({"profileType": "AL", "length": 1000, "quantity": 1.5}, "quantity"),
        ({"profileType": "AL", "length": 1000, "priority": "asap"}, "priority"),
        ({"profileType": "AL", "length": 1000, "tolerance": -1}, "tolerance"),
    ],
)
def test_invalid_rows(row, field):
    with pytest.raises(ValidationError) as ei:
        normalize_item(row, 4)
    assert ei.value.field == field
    assert ei.value.index == 4
    assert ei.value.code == "CLIENT_001"


def test_fail_fast_and_collect_errors():
    rows = [
        {"profileType": "AL", "length": 1000},
        {"profileType": "AL", "length": 1},
        {"profileType": "", "length": 1000},
    ]
    with pytest.raises(ValidationError):
        normalize_items(rows)

    res = normalize_items(rows, collect_errors=True)
    assert len(res.items) == 1
    assert [e.index for e in res.errors] == [1, 2]
    assert not res.ok


def test_resolver_clamps_and_reports():
    notes = []
    cons = resolve_constraints({"kerfWidth": 12, "max_cuts_per_stock": 500, "safetyMargin": 3}, notes=notes, logger=QUIET)
    assert cons.kerf_width == 5.0
    assert cons.max_cuts_per_stock == 100
    assert cons.safety_margin == 3.0
    assert len(notes) == 2


def test_resolver_clamps_infinite_values():
    notes = []
    cons = resolve_constraints(
        {"maxCutsPerStock": float("inf"), "kerfWidth": float("-inf"), "maxWastePercentage": "inf"},
        notes=notes,
        logger=QUIET,
    )
    assert cons.max_cuts_per_stock == 100
    assert cons.kerf_width == 0.1
    assert cons.max_waste_percentage == 100.0
    assert len(notes) == 3


def test_resolver_defaults_and_bools():
    cons = resolve_constraints(None, logger=QUIET)
    assert (cons.kerf_width, cons.safety_margin, cons.min_scrap_length) == (3.5, 2.0, 75.0)
    assert resolve_constraints({"reclaimWasteOnly": "yes"}, logger=QUIET).reclaim_waste_only is True


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"bladeWidth": 3}, "bladeWidth"),
        ({"kerfWidth": "wide"}, "kerfWidth"),
        ({"kerfWidth": True}, "kerfWidth"),
        ({"allowPartialStocks": "maybe"}, "allowPartialStocks"),
        ([1, 2], "constraints"),
        ("kerfWidth=3", "constraints"),
    ],
)
def test_resolver_rejects_malformed(overrides, field):
    with pytest.raises(ValidationError) as ei:
        resolve_constraints(overrides, logger=QUIET)
    assert ei.value.field == field


def test_errors_survive_pickling():
    e = ValidationError("bad length", {"value": 3}, field="length", index=2)
    back = pickle.loads(pickle.dumps(e))
    assert type(back) is ValidationError
    assert (back.field, back.index, back.details["value"]) == ("length", 2, 3)
    assert back.to_dict() == e.to_dict()


def test_unknown_exceptions_become_generic_system_errors():
    d = as_error_dict(KeyError("secret internals"))
    assert d["code"] == InternalFault.code == "SYSTEM_001"
    assert "secret" not in d["message"]
