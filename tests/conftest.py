"""
Shared fixtures.
"""

import pytest


class FakeWarehouse:
    """Warehouse client that records SQL and answers from canned rows."""

    def __init__(self, fail_on=None):
        self.statements = []
        self.fail_on = fail_on

    def execute(self, sql):
        self.statements.append(sql)
        if self.fail_on and self.fail_on in sql:
            raise RuntimeError("Catalog Error: Table with name flows does not exist")
        if "COUNT(*) AS cnt" in sql:
            return [{"cnt": 2}]
        if "AS time" in sql:
            return [{"time": 1424242800000, "attack": "Benign", "count": 2}]
        if "Attack AS attack" in sql:
            return [{"attack": "Benign", "count": 2}]
        if "AS ip" in sql:
            return [{"ip": "59.166.0.2", "value": 2}]
        if "SELECT *" in sql:
            return [
                {"IPV4_SRC_ADDR": "59.166.0.2", "IN_BYTES": 2 ** 60},
                {"IPV4_SRC_ADDR": "59.166.0.4", "IN_BYTES": 146},
            ]
        return []


@pytest.fixture
def warehouse():
    """A fake warehouse client."""
    return FakeWarehouse()


@pytest.fixture
def failing_warehouse():
    """A fake warehouse client that fails the flows page query."""
    return FakeWarehouse(fail_on="SELECT *")
