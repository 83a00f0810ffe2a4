from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from auction.main import main
    flask_app.register_blueprint(main)

    from auction.api.auctions import auctions
    flask_app.register_blueprint(auctions, url_prefix='/api/auctions')

    # Register Socket.IO event handlers
    from auction.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the master lot list."""
        from auction.models import Lot
        from auction.seed import SAMPLE_LOTS
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for data in SAMPLE_LOTS:
                db.session.add(Lot(**data))

            db.session.commit()
            print(f'Database has been reset and seeded with {len(SAMPLE_LOTS)} lots!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
