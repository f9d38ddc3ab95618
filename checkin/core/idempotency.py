# checkin/core/idempotency.py
import logging
from hashlib import sha256

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from checkin.db import session as db_session
from checkin.models.idempotency import IdempotencyKey

logger = logging.getLogger(__name__)


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Reenvia a resposta gravada quando o cliente repete um POST com o mesmo Idempotency-Key."""

    async def dispatch(self, request: Request, call_next):
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return await call_next(request)

        key = (request.headers.get("Idempotency-Key") or "")[:80]
        if not key:
            return await call_next(request)

        # a chave vale por principal + rota + corpo
        auth = request.headers.get("Authorization", "")
        payload = await request.body()
        signature = sha256(
            (request.method + request.url.path + auth).encode() + b"\n" + sha256(payload).digest()
        ).hexdigest()
        with db_session.SessionLocal() as db:
            exists = db.execute(
                select(IdempotencyKey).where(IdempotencyKey.key == key, IdempotencyKey.signature == signature)
            ).scalar_one_or_none()
            if exists:
                logger.debug("idempotent replay for key %s", key)
                return Response(content=exists.response_body, media_type=exists.response_mime,
                                status_code=exists.status_code, headers={"Idempotent-Replay": "true"})

        response = await call_next(request)
        body = b""
        async for chunk in response.body_iterator:
            body += chunk
        mime = response.headers.get("content-type") or "application/json"
        if response.status_code < 500:
            with db_session.SessionLocal() as db:
                db.add(IdempotencyKey(key=key, signature=signature, response_body=body,
                                      response_mime=mime,
                                      status_code=response.status_code))
                try:
                    db.commit()
                except IntegrityError:
                    # pedido concorrente com a mesma chave já gravou
                    db.rollback()
                    logger.debug("idempotency key %s stored concurrently", key)
        return Response(content=body, media_type=mime, status_code=response.status_code)
