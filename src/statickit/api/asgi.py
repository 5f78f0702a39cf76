"""ASGI entrypoint for the StaticKit session API."""

from statickit.api.app import create_app
from statickit.containers import build_container

app = create_app(build_container())
