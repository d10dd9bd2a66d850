"""
HTTP middleware for Lishka Upload Service.
"""

import time
import uuid
from typing import Any, Callable, Dict
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from core.config import get_settings
from core.logging import get_logger
from core.exceptions import LishkaException, UploadServiceException

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
REFRESH_TOKEN_HEADER = "x-lishka-user-refresh-token"
TOKEN_AUDIENCE = "authenticated"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Public endpoints that do NOT require authentication
PUBLIC_PATHS = {
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and logs it with its outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Keep the caller's ID so client and server logs line up
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        started = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"[{request_id}] {request.method} {request.url.path} - Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"[{request_id}] Error: {e} - Processing time: {time.perf_counter() - started:.4f}s")
            raise

        user_id = getattr(request.state, "user_id", None)
        logger.info(
            f"[{request_id}] Response: {response.status_code}"
            f"{f' - User: {user_id}' if user_id else ''}"
            f" - Processing time: {time.perf_counter() - started:.4f}s"
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns exceptions that escape the routes into JSON error responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except LishkaException as e:
            request_id = _request_id(request)
            if isinstance(e, UploadServiceException):
                logger.error(f"[{request_id}] Upload failure ({e.error_type.value}): {e.message}")
            else:
                logger.error(f"[{request_id}] Lishka Exception: {e.error_code} - {e.message}", extra={"details": e.details})

            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.error_code,
                    "message": e.message,
                    "details": e.details,
                    "request_id": request_id
                }
            )

        except Exception as e:
            request_id = _request_id(request)
            logger.error(f"[{request_id}] Unexpected error: {e}", exc_info=True)

            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "request_id": request_id
                }
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the standard security headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


def decode_access_token(token: str, secret: str) -> Dict[str, Any]:
    """
    Verify a Supabase access token.

    Raises:
        ExpiredSignatureError: If the token has expired
        InvalidTokenError: If the signature, audience or subject is invalid
    """
    payload = jwt.decode(token, secret, algorithms=["HS256"], audience=TOKEN_AUDIENCE)
    if not payload.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return payload


def _auth_error(error: str, message: str, status_code: int = 401) -> JSONResponse:
    return JSONResponse({"error": error, "message": message}, status_code=status_code)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Verifies the Supabase access token on every non-public request.

    The verified token and the optional refresh token are kept on the
    request state; uploads forward both to the Lishka backend.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        request_id = _request_id(request)

        if path in PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            logger.warning(f"[{request_id}] Unauthorized: Missing or invalid Authorization header for path: {path}")
            return _auth_error("UNAUTHORIZED", "Missing or invalid Authorization header")

        jwt_secret = get_settings().supabase_jwt_secret
        if not jwt_secret:
            logger.error(f"[{request_id}] SUPABASE_JWT_SECRET not configured")
            return _auth_error(
                "CONFIGURATION_ERROR", "Authentication service not properly configured", status_code=500
            )

        token = auth_header.split(" ", 1)[1]
        try:
            payload = decode_access_token(token, jwt_secret)
        except ExpiredSignatureError:
            logger.warning(f"[{request_id}] Token expired")
            return _auth_error("TOKEN_EXPIRED", "Access token has expired")
        except InvalidTokenError as e:
            logger.warning(f"[{request_id}] Invalid token: {e}")
            return _auth_error("INVALID_TOKEN", "Invalid or malformed access token")

        request.state.user = payload
        request.state.user_id = payload["sub"]
        request.state.access_token = token
        request.state.refresh_token = request.headers.get(REFRESH_TOKEN_HEADER)
        logger.debug(f"[{request_id}] Authenticated user {payload['sub']}")

        return await call_next(request)
