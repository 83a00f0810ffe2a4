import os
import sys
import pytest

# Ensure the backend root (containing the `auction` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from auction import create_app, db, socketio
from auction.store import get_store


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    LOG_LEVEL = 'DEBUG'
    DEFAULT_TIMER_SEC = 30
    TIMER_TICK_SEC = 1
    TIMER_SYNC_INTERVAL_SEC = 10
    TIMER_DRIFT_TOLERANCE_SEC = 2
    TIMER_PERSIST_EVERY_SEC = 5


SAMPLE = [
    {'name': 'Jos Buttler', 'base_price': 20000000, 'category': 'Wicket-Keeper'},
    {'name': 'Mohammed Shami', 'base_price': 15000000, 'category': 'Fast Bowler'},
    {'name': 'Mitchell Starc', 'base_price': 20000000, 'category': 'Fast Bowler'},
    {'name': 'Marcus Stoinis', 'base_price': 10000000, 'category': 'All-Rounder'},
    {'name': 'Yuzvendra Chahal', 'base_price': 12500000, 'category': 'Spin Bowler'},
]


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import auction.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def store(flask_app):
    return get_store(flask_app)


@pytest.fixture()
def lots(flask_app):
    from auction.models import Lot
    rows = [Lot(**data) for data in SAMPLE]
    db.session.add_all(rows)
    db.session.commit()
    return [row.to_dict() for row in rows]


@pytest.fixture()
def room_id(store, lots):
    return store.init_room(time_remaining=0, lots=lots)['room_id']
