"""Server — page table, dispatcher, and factory."""

from perch.server.factory import Server, create_server
from perch.server.policy import Policy, RouteKind, allowed_methods, select_policy

__all__ = ["Policy", "RouteKind", "Server", "allowed_methods", "create_server", "select_policy"]
