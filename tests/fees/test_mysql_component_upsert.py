from datetime import date
from decimal import Decimal

from src.school_ledger.school_ledger.core.enums import ComponentStatus, FeeCycle, FeeType
from src.school_ledger.school_ledger.fees.model import MonthlyFeeComponent
from src.school_ledger.school_ledger.fees.mysql_fee_component_repository import MySQLFeeComponentRepository


class RecordingCursor:
    def __init__(self, existing_rows):
        self.existing_rows = existing_rows
        self.statements: list[tuple[str, tuple]] = []
        self._result: list[dict] = []

    def execute(self, sql, params=()):
        self.statements.append((" ".join(sql.split()), tuple(params)))
        self._result = list(self.existing_rows) if sql.strip().startswith("SELECT") else []

    def fetchall(self):
        return self._result

    def fetchone(self):
        return self._result[0] if self._result else None

    def close(self):
        pass


class RecordingConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False

    def cursor(self, dictionary=False):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        pass

    def close(self):
        pass


class RecordingConnectionFactory:
    def __init__(self, existing_rows=()):
        self.cursor = RecordingCursor(existing_rows)
        self.conn = RecordingConnection(self.cursor)

    def connect(self, *, with_database=True):
        return self.conn


def _component(month, fee_type=FeeType.CLASS_FEE, category="cat-tuition"):
    return MonthlyFeeComponent(
        student_id="stu-1",
        school_id="school-1",
        fee_category_id=category,
        fee_type=fee_type,
        fee_name="Tuition Fee",
        period_year=2024,
        period_month=month,
        period_start=date(2024, month, 1),
        period_end=date(2024, month, 28),
        fee_amount=Decimal("1000.00"),
        fee_cycle=FeeCycle.MONTHLY,
        paid_amount=Decimal("0.00"),
        pending_amount=Decimal("1000.00"),
        status=ComponentStatus.PENDING,
        due_date=date(2024, month, 15),
    )


def test_upsert_writes_through_the_unique_key():
    factory = RecordingConnectionFactory(
        existing_rows=[
            {"student_id": "stu-1", "period_year": 2024, "period_month": 3, "fee_type": "class-fee", "category_key": "cat-tuition"},
        ]
    )
    repo = MySQLFeeComponentRepository(factory)

    counts = repo.upsert_components(
        components=[_component(3), _component(4), _component(4, FeeType.TRANSPORT_FEE, None)]
    )

    assert counts == (2, 1)
    writes = [sql for sql, _ in factory.cursor.statements if sql.startswith("INSERT")]
    assert len(writes) == 3
    for sql in writes:
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert "pending_amount=GREATEST(0, VALUES(fee_amount) - paid_amount)" in sql
        assigned = {part.split("=")[0].strip() for part in sql.split("ON DUPLICATE KEY UPDATE")[1].split(",")}
        # Payment fields belong to fee collection.
        assert "paid_amount" not in assigned
        assert "status" not in assigned
    assert not any("FOR UPDATE" in sql for sql, _ in factory.cursor.statements)
    assert factory.conn.committed


def test_transport_rows_are_written_without_category():
    factory = RecordingConnectionFactory()
    repo = MySQLFeeComponentRepository(factory)

    repo.upsert_components(components=[_component(4, FeeType.TRANSPORT_FEE, "cat-transport")])

    inserts = [p for sql, p in factory.cursor.statements if sql.startswith("INSERT")]
    assert len(inserts) == 1
    params = inserts[0]
    assert params[2] is None
    assert params[3] == "transport-fee"


def test_empty_batch_touches_nothing():
    factory = RecordingConnectionFactory()

    assert MySQLFeeComponentRepository(factory).upsert_components(components=[]) == (0, 0)
    assert factory.cursor.statements == []
