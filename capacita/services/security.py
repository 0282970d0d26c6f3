import hashlib
import hmac
import secrets
import time
from datetime import datetime, timedelta, timezone

import jwt
from flask import Response, has_request_context, request
from passlib.hash import bcrypt
from werkzeug.exceptions import Forbidden, Unauthorized

from capacita.core.db import get_db
from capacita.core.settings import settings
from capacita.models.perfis import Perfis

JWT_ALG = "HS256"
CSRF_TTL_SECONDS = 12 * 60 * 60  # 12 horas
SESSION_TTL = timedelta(days=1)


def _secure_cookie_flag() -> bool:
    if settings.ENV != "dev":
        return True
    if not has_request_context():
        return False
    if request.is_secure:
        return True
    forwarded_proto = request.headers.get("X-Forwarded-Proto", "")
    return forwarded_proto.lower().split(",", 1)[0].strip() == "https"


def _cookie_kwargs(httponly: bool) -> dict:
    secure_flag = _secure_cookie_flag()
    return {
        "httponly": httponly,
        "samesite": "None" if secure_flag else "Lax",
        "secure": secure_flag,
        "path": "/",
    }


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.verify(password, password_hash)


def sign_session(user: Perfis, expires_in: timedelta = SESSION_TTL) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "empresa_id": user.empresa_id,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALG)


def set_session_cookie(res: Response, token: str, remember: bool) -> None:
    max_age = int(SESSION_TTL.total_seconds()) if remember else None
    res.set_cookie(settings.COOKIE_NAME, token, max_age=max_age, **_cookie_kwargs(True))


def clear_session_cookie(res: Response) -> None:
    res.delete_cookie(settings.COOKIE_NAME, **_cookie_kwargs(True))


def _csrf_secret() -> bytes:
    secret = settings.CSRF_SECRET or settings.JWT_SECRET
    return secret.encode("utf-8")


def _sign_csrf_payload(payload: str) -> str:
    return hmac.new(_csrf_secret(), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_csrf_token(user_id: str) -> str:
    issued_at = int(time.time())
    nonce = secrets.token_urlsafe(16)
    signature = _sign_csrf_payload(f"{user_id}:{issued_at}:{nonce}")
    return f"{issued_at}:{nonce}:{signature}"


def set_csrf_cookie(res: Response, token: str, remember: bool) -> None:
    max_age = int(SESSION_TTL.total_seconds()) if remember else None
    res.set_cookie(
        settings.CSRF_COOKIE_NAME, token, max_age=max_age, **_cookie_kwargs(False)
    )
    res.headers["X-CSRF-Token"] = token


def clear_csrf_cookie(res: Response) -> None:
    res.delete_cookie(settings.CSRF_COOKIE_NAME, **_cookie_kwargs(False))


def _is_valid_csrf_token(user_id: str, token: str) -> bool:
    try:
        issued_raw, nonce, signature = token.split(":", 2)
        issued_at = int(issued_raw)
    except (ValueError, AttributeError):
        return False

    if (time.time() - issued_at) > CSRF_TTL_SECONDS:
        return False

    expected = _sign_csrf_payload(f"{user_id}:{issued_at}:{nonce}")
    return hmac.compare_digest(signature, expected)


def enforce_csrf(request_obj=None) -> None:
    req = request_obj or request
    header_token = req.headers.get("X-CSRF-Token") or req.headers.get("X-CSRFToken")
    cookie_token = req.cookies.get(settings.CSRF_COOKIE_NAME)

    if not header_token or not cookie_token:
        raise Forbidden(description="CSRF token ausente")

    if not hmac.compare_digest(header_token, cookie_token):
        raise Forbidden(description="CSRF token inválido")

    if not _is_valid_csrf_token(get_current_user_id(req), header_token):
        raise Forbidden(description="CSRF token expirado ou inválido")


def get_current_user_id(req=None) -> str:
    req = req or request
    token = req.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise Unauthorized(description="Não autenticado")
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[JWT_ALG],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError:
        raise Unauthorized(description="Sessão inválida")
    return str(decoded["sub"])


def get_current_user() -> Perfis:
    user_id = get_current_user_id()
    user = get_db().get(Perfis, user_id)
    if not user or not user.ativo:
        raise Unauthorized(description="Não autenticado")
    return user


FORBID = Forbidden(description="Sem permissão")


def require_roles(*roles: str) -> Perfis:
    user = get_current_user()
    if user.role not in roles:
        raise FORBID
    return user
