import jwt
from datetime import datetime, timedelta, timezone
from django.conf import settings


def create_jwt_token(payload: dict, expires_minutes: int = 60) -> str:
    """إنشاء JWT Token مع صلاحية محددة"""
    now = datetime.now(timezone.utc)
    payload.update({
        'exp': now + timedelta(minutes=expires_minutes),
        'iat': now
    })
    return jwt.encode(payload, settings.SECRET_KEY, algorithm='HS256')

def decode_jwt_token(token: str) -> dict:
    """فك تشفير JWT Token"""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=['HS256'])

def issue_session_token(user, expires_minutes: int = 60) -> str:
    """Issue a bearer token and pin it as the user's only valid session."""
    token = create_jwt_token({'user_id': user.id, 'role': user.role}, expires_minutes=expires_minutes)
    user.current_token_user = token
    user.save(update_fields=['current_token_user'])
    return token
