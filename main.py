"""ASGI entry point for the GitHub gateway.

Run with ``uvicorn main:app``. Settings are read from the environment once at
import; see ``github_gateway.config`` for the variables.
"""

from github_gateway.app import create_app
from github_gateway.config import load_settings

app = create_app(load_settings())
