# backend/wsgi.py
# FLASK_APP target for the CLI and the WSGI host (e.g. `gunicorn wsgi:app`).
from marketplace import create_app

app = create_app()


if __name__ == "__main__":
    app.run(port=app.config["PORT"], debug=app.config["APP_ENV"] == "development")
