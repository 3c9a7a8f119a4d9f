"""Transport adapters."""

from perch.adapters.asgi import AdapterOptions, create_asgi_app, send_response

__all__ = ["AdapterOptions", "create_asgi_app", "send_response"]
