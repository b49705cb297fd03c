from fastapi import Request
import httpx

from kyc_review_service.app.config import settings

async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    FastAPI dependency provider for the shared httpx.AsyncClient instance.
    Retrieves the client from the application state (`request.app.state.http_client`),
    creating it there if startup has not run yet.
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        request.app.state.http_client = client
    return client
