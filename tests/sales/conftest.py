import pytest
import structlog
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def sales_bed():
    from sales.domain import sales

    bed = DomainFixture(sales)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(sales_bed):
    with sales_bed.domain_context():
        yield


@pytest.fixture()
def engine():
    from sales.utils.db import create_sales_engine, drop_db, setup_db

    engine = create_sales_engine("sqlite://")
    setup_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture()
def repository(engine):
    """A store on a fresh in-memory database, also used by the command handlers."""
    from sales.persistence.repository import SalesOrderRepository, use_order_repository

    repository = SalesOrderRepository(engine)
    use_order_repository(repository)
    yield repository
    use_order_repository(None)


class AuditLog:
    """Stands in for the audit logger and keeps every entry it receives."""

    def __init__(self, fail=False):
        self.entries = []
        self.fail = fail

    def info(self, event, **entry):
        if self.fail:
            raise RuntimeError("audit sink unavailable")
        entry["context"] = structlog.contextvars.get_contextvars()
        self.entries.append(entry)

    def actions(self):
        return [entry["action"] for entry in self.entries]


@pytest.fixture()
def audit_log(monkeypatch):
    from sales.order import audit

    log = AuditLog()
    monkeypatch.setattr(audit, "audit_logger", log)
    return log


@pytest.fixture()
def failing_audit_log(monkeypatch):
    from sales.order import audit

    log = AuditLog(fail=True)
    monkeypatch.setattr(audit, "audit_logger", log)
    return log
