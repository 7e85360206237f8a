"""ASGI entry point: ``assetvault.asgi:app``."""

from assetvault.app_factory import create_app

app = create_app()
