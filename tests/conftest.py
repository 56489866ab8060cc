import itertools
import os
import sys

import pytest

# Path setup before any project imports to satisfy E402
ROOT = os.path.dirname(__file__)
PARENT = os.path.abspath(os.path.join(ROOT, ".."))
if PARENT not in sys.path:  # pragma: no cover - environment dependent
    sys.path.insert(0, PARENT)


def _lazy_imports():  # isolate heavy imports & satisfy lint ordering
    from mealpick.app_factory import create_app  # noqa: E402
    from mealpick.db import create_all  # noqa: E402

    return create_app, create_all


_TABLES = ("selections", "food_status", "menus", "users")


@pytest.fixture(scope="session")
def app_session(tmp_path_factory):
    create_app, create_all = _lazy_imports()
    db_file = tmp_path_factory.mktemp("db") / "test_app.db"
    url = f"sqlite:///{db_file}"
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "database_url": url,
            "FORCE_DB_REINIT": True,
            "timezone": "Africa/Accra",
        }
    )
    with app.app_context():
        create_all()
    return app


@pytest.fixture(autouse=True)
def clean_db(app_session):
    """Every test starts from empty tables and default side-channel backends."""
    from sqlalchemy import text

    from mealpick.db import get_session
    from mealpick.metrics import NoopMetrics, set_metrics
    from mealpick.notifications import NoopNotifier, set_notifier

    db = get_session()
    try:
        for t in _TABLES:
            db.execute(text(f"DELETE FROM {t}"))
        db.commit()
    finally:
        db.close()
    yield
    set_metrics(NoopMetrics())
    set_notifier(NoopNotifier())


@pytest.fixture
def roster():
    """RosterRepo with predictable generated ids (number 1000, 1001, ...)."""
    from mealpick.roster_repo import RosterRepo

    counter = itertools.count(1000)
    return RosterRepo(number_source=lambda: next(counter))


@pytest.fixture
def make_user(roster):
    def _make(first="Ama", last="Mensah", department="IT", role="worker"):
        return roster.create_worker(first, last, department, role)

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("Kofi", "Boateng", "Management", "admin")


@pytest.fixture
def distributor(make_user):
    return make_user("Esi", "Owusu", "Kitchen", "distributor")


@pytest.fixture
def client(app_session):
    c = app_session.test_client()
    # Ensure clean base environ to avoid leakage between tests
    c.environ_base = {}
    return c

