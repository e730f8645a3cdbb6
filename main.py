"""WSGI entrypoint.

Usage:
  gunicorn -w 2 -b 0.0.0.0:8000 main:app
  python main.py            # local development server
"""

import os

from lotogen import create_app

app = create_app()


if __name__ == "__main__":
    app.run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        debug=bool(app.config.get("DEBUG")),
    )
