from __future__ import annotations

from app.models import Base
import app.models  # noqa: F401


def test_model_metadata_contains_sales_tables():
    assert {"contacts", "deals", "quotes"} == set(Base.metadata.tables.keys())


def test_versioned_tables_carry_row_version():
    for name in ("deals", "quotes"):
        assert "row_version" in Base.metadata.tables[name].columns


def test_quote_number_is_unique_per_version():
    constraints = {constraint.name for constraint in Base.metadata.tables["quotes"].constraints}
    assert "uq_quotes_org_number_version" in constraints
