#!/usr/bin/env python
import eventlet
eventlet.monkey_patch()  # À appeler avant tout autre import !

import logging

from app import create_app
from config import Config


def main():
    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app = create_app(config)
    socketio = app.extensions['socketio']
    logging.getLogger(__name__).info("Démarrage sur %s:%s", config.HOST, config.PORT)
    socketio.run(app, host=config.HOST, port=config.PORT, debug=config.DEBUG, use_reloader=False)


if __name__ == '__main__':
    main()
