#!/usr/bin/env python3
"""Entry point for the café ticket printing service."""
import logging
import os

from cafe_pos import create_app

app = create_app(os.environ.get("FLASK_ENV", "default"))

logger = logging.getLogger("cafe_pos.run")

if __name__ == "__main__":
    # Get host and port from environment or use defaults
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV", "default") == "development"

    logger.info("Starting ticket printing service on http://%s:%s", host, port)
    # The reloader would spawn a second process holding its own device channel
    app.run(host=host, port=port, debug=debug, use_reloader=False)
