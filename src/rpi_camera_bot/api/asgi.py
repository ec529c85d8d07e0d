"""ASGI entrypoint for the camera bot webhook."""

from rpi_camera_bot.api.app import create_app
from rpi_camera_bot.containers import build_container

container = build_container()
container.dispatcher.camera.ensure_available()
app = create_app(container)
