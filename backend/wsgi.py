"""WSGI entrypoint for production servers (gunicorn -k eventlet backend.wsgi:app)."""
try:
    from backend.catchmind.server import create_app
except ImportError:  # pragma: no cover
    from catchmind.server import create_app

app, socketio = create_app()
