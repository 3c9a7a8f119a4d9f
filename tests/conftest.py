"""Shared fixtures: in-memory kida templates and page module builders."""

from types import SimpleNamespace
from typing import Any

import pytest
from kida import DictLoader, Environment

TEMPLATES = {
    "home.html": "<h1>Hello {{ name }}</h1>",
    "message.html": "<p>{{ message }}</p>",
    "echo.html": "<p>echo:{{ message }}</p>",
    "counter.html": "<p>count={{ count }}</p><p>submitted={{ submitted }}</p>",
    "stats.html": (
        '<div id="stats">'
        "{% block stats %}"
        "{% if stats %}<ul>{% for s in stats %}<li>{{ s }}</li>{% end %}</ul>"
        '{% else %}<p class="loading">Loading stats</p>{% end %}'
        "{% end %}"
        "</div>"
    ),
    "app.html": '<div class="app">{{ content }}</div>',
    "title.head.html": "<title>{{ title }}</title>",
    "error.html": "<p>custom error {{ status }}</p>",
    "missing.html": "<p>custom missing</p>",
}


@pytest.fixture
def env() -> Environment:
    """A kida Environment with in-memory test templates."""
    return Environment(loader=DictLoader(TEMPLATES))


@pytest.fixture
def view(env: Environment):
    """Build a view module: ``view("home.html", head="title.head.html")``."""

    def make(name: str, *, head: str | None = None, **extra: Any) -> SimpleNamespace:
        return SimpleNamespace(
            template=env.get_template(name),
            head=env.get_template(head) if head else None,
            **extra,
        )

    return make


@pytest.fixture
def app_module(env: Environment) -> SimpleNamespace:
    return SimpleNamespace(template=env.get_template("app.html"))
