#!/usr/bin/env python3
"""Entry point for the printbridge API server."""
import logging
import os
from printbridge import create_app

app = create_app(os.environ.get("FLASK_ENV", "default"))

if __name__ == "__main__":
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Get host and port from environment or use defaults
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_ENV", "default") == "development"

    print(f"Starting printbridge on http://{host}:{port}")
    app.run(host=host, port=port, debug=debug)
