import logging

from flask import Flask, jsonify
from flask_socketio import SocketIO, emit
from werkzeug.exceptions import HTTPException

from api import ApiError, api_bp
from config import Config
from register import register_bp
from storage import QueueStore

logger = logging.getLogger(__name__)


def create_app(config=None, store=None):
    """
    Construit l'application Flask, son serveur Socket.IO et le store
    en mémoire partagé par les blueprints.
    """
    config = config or Config()
    app = Flask(__name__)
    app.config['SECRET_KEY'] = config.SECRET_KEY
    app.config['QUEUE_CONFIG'] = config
    app.extensions['queue_store'] = store if store is not None else QueueStore(config.STAFF_ROSTER)

    socketio = SocketIO(app, async_mode=config.ASYNC_MODE)

    app.register_blueprint(api_bp)
    app.register_blueprint(register_bp)

    @app.route('/')
    def home():
        """
        Point d'entrée : liens vers l'inscription et l'API.
        """
        return jsonify({
            'service': 'walk-in queue',
            'register': '/register',
            'qr': '/qr',
            'groups': '/api/groups',
            'stats': '/api/queue/stats',
        })

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return error.to_response()

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Erreur inattendue : %s", error)
        return jsonify({'message': 'Internal server error'}), 500

    @socketio.on('connect')
    def on_connect():
        # Envoie l'état courant au nouvel écran
        store = app.extensions['queue_store']
        emit('update_queue', {
            'queue': [g.id for g in store.get_queued_groups()],
            'stats': store.stats(),
        })

    return app
