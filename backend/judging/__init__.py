from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
# async_handlers=False: events from one connection are handled in arrival order
socketio = SocketIO(async_mode=None, async_handlers=False)


def create_app(config_class=Config, clock=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Models must be imported before create_all / migrations see the metadata
    from judging import models  # noqa: F401

    from judging.services import init_services, now_ms
    init_services(flask_app, socketio, clock=clock or now_ms)

    from judging.main import main
    flask_app.register_blueprint(main)

    from judging.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates every table."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('purge-devices')
    @click.option('--older-than', 'older_than', type=int, default=None,
                  help='Retention in seconds; defaults to DEVICE_RETENTION_SEC.')
    def purge_devices_command(older_than):
        """Forgets offline devices that have not connected within the retention window."""
        from judging.services import get_services, now_ms
        retention = older_than if older_than is not None else flask_app.config.get('DEVICE_RETENTION_SEC', 0)
        if not retention:
            print('Device retention disabled; nothing purged.')
            return
        with flask_app.app_context():
            purged = get_services().presence.purge_offline(now_ms() - int(retention) * 1000)
            print(f'Purged {purged} offline device(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(purge_devices_command)

    return flask_app
