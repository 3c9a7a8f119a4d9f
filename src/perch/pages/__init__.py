"""Page definitions, per-request context, and filesystem discovery."""

from perch.pages.types import PageDefinition, ServerSideContext, ServerSideProps

__all__ = ["PageDefinition", "ServerSideContext", "ServerSideProps"]
