import os

# Widgets must not need a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import copy
from pathlib import Path

import pytest

from pivoteditor.model.document import Document

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"

SAMPLE_DATA = {
    "version": 12,
    "pivots": {
        "1": {
            "id": "1",
            "name": "Leads by stage",
            "model": "crm.lead",
            "domain": [["type", "=", "opportunity"]],
            "rowGroupBys": ["stage_id"],
            "measures": [{"field": "expected_revenue"}],
            "sortedColumn": None,
            "colGroupBys": ["create_date:month"],
        },
        "2": {
            "id": "2",
            "name": "Invoices",
            "model": "account.move",
            "domain": [],
            "rowGroupBys": [],
            "measures": [],
            "sortedColumn": {"measure": "amount_total", "order": "desc"},
        },
    },
    "globalFilters": [{"id": "f1"}],
}


@pytest.fixture
def sample_data():
    return copy.deepcopy(SAMPLE_DATA)


@pytest.fixture
def document(sample_data):
    return Document.from_dict(sample_data)


@pytest.fixture
def example_path():
    return ASSETS_DIR / "Example.osheet.json"


@pytest.fixture(scope="session")
def qapp():
    from pivoteditor.app.application import create_app

    return create_app(["pytest"])
