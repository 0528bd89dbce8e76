from typing import List, Tuple
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt

from ticketing.core.security import decode_access_token
from ticketing.services.gateways import PaymentRouter
from ticketing.services.mercado_pago import MercadoPagoClient, MercadoPagoGateway
from ticketing.services.stripe_gateway import StripeGateway

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def get_current_identity(token: str = Depends(oauth2_scheme)) -> Tuple[int, List[str]]:
    """Return (user_id, roles) from the JWT token."""
    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
        roles = payload.get("roles") or []
        if not isinstance(roles, list):
            roles = [roles]
        return user_id, roles
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def require_roles(*allowed: str):
    def checker(identity: Tuple[int, List[str]] = Depends(get_current_identity)):
        _user_id, roles = identity
        if not any(r in roles for r in allowed):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return checker

def get_mercado_pago_client() -> MercadoPagoClient:
    return MercadoPagoClient()

def get_payment_router(mp_client: MercadoPagoClient = Depends(get_mercado_pago_client)) -> PaymentRouter:
    return PaymentRouter([MercadoPagoGateway(mp_client), StripeGateway()])
