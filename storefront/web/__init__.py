"""
Web — FastAPI routes over the engine.

    app = create_app(EngineConfig.from_env(), verifier=StaticTokenVerifier(...))

Errors leave as {"error": kind, "message": ..., "details": {...}} with
INVALID_REQUEST/ELIGIBILITY → 400, UNAUTHORIZED → 401, NOT_FOUND → 404,
CONFLICT → 409, EXTERNAL → 502.
"""

from storefront.web._app import STATUS_CODES, Engine, create_app, unwrap
from storefront.web import _codecs as codecs

__all__ = ("STATUS_CODES", "Engine", "create_app", "unwrap", "codecs")
