"""FastAPI dependencies."""

from fastapi import Request

from expense_tracker.orchestrator import AppComponents


def get_components(request: Request) -> AppComponents:
    """The components the running app was created with."""
    return request.app.state.components
