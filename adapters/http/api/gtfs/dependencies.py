from fastapi import Request

from core.containers import GTFSStaticContainer


def get_container(request: Request) -> GTFSStaticContainer:
    """Container attached to the app by create_app()."""
    return request.app.state.container
