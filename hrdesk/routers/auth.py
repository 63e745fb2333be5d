from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from hrdesk.audit import client_ip, log_audit, user_agent
from hrdesk.db import get_db
from hrdesk.errors import ApiError
from hrdesk.schemas import AuthResponse, LoginRequest, MeResponse
from hrdesk.security import (
    create_access_token,
    ensure_login_attempt_allowed,
    get_current_claims,
    register_login_failure,
    register_login_success,
)
from hrdesk.services.users import authenticate, get_user

router = APIRouter(tags=["auth"])


@router.post("/api/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AuthResponse:
    email = str(payload.email).strip().lower()
    ip = client_ip(request)
    agent = user_agent(request)
    request_id = getattr(request.state, "request_id", None)

    if ip:
        try:
            ensure_login_attempt_allowed(ip)
        except ApiError:
            log_audit(
                db,
                actor_id=email,
                actor_role="anonymous",
                action="LOGIN_FAIL",
                success=False,
                ip=ip,
                user_agent=agent,
                details={"reason": "TOO_MANY_ATTEMPTS"},
                request_id=request_id,
            )
            raise

    user = authenticate(db, email, payload.password)
    if user is None:
        if ip:
            register_login_failure(ip)
        log_audit(
            db,
            actor_id=email,
            actor_role="anonymous",
            action="LOGIN_FAIL",
            success=False,
            ip=ip,
            user_agent=agent,
            details={"reason": "INVALID_CREDENTIALS"},
            request_id=request_id,
        )
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid credentials.")

    if ip:
        register_login_success(ip)

    token, expires_in, claims = create_access_token(user)
    request.state.actor = claims["role"]
    request.state.actor_id = claims["sub"]
    log_audit(
        db,
        actor_id=claims["sub"],
        actor_role=claims["role"],
        action="LOGIN_SUCCESS",
        success=True,
        ip=ip,
        user_agent=agent,
        details={"jti": claims["jti"]},
        request_id=request_id,
    )
    return AuthResponse(access_token=token, expires_in=expires_in)


@router.get("/api/auth/me", response_model=MeResponse)
def me(
    claims: dict[str, Any] = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> MeResponse:
    user = get_user(db, int(claims["sub"]))
    return MeResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        iat=int(claims["iat"]),
        exp=int(claims["exp"]),
    )
