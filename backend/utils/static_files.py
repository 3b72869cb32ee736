"""Static frontend bundle with single-page-app fallback to index.html."""
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

INDEX_DOCUMENT = "index.html"


class SPAStaticFiles(StaticFiles):
    """Serve files that exist; answer every other GET path with the bundle's index.html.

    Only GET/HEAD reach the bundle. Other methods on paths no API route claims get 404.
    """

    async def get_response(self, path: str, scope: Scope) -> Response:
        if scope["method"] not in ("GET", "HEAD"):
            raise HTTPException(status_code=404)
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404 or path == INDEX_DOCUMENT:
                raise
        return await super().get_response(INDEX_DOCUMENT, scope)
