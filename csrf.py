import time

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="financeflow-csrf")


def generate_csrf_token(user_id: str, max_age_hours: int = 2) -> str:
    serializer = _serializer()
    expiry = int(time.time()) + (max_age_hours * 3600)
    return serializer.dumps({"u": user_id, "exp": expiry})


def validate_csrf_token(token: str, user_id: str, max_age_hours: int = 2) -> bool:
    if not token:
        return False
    serializer = _serializer()
    try:
        data = serializer.loads(token, max_age=max_age_hours * 3600)
    except BadSignature:
        return False

    if data.get("u") != user_id:
        return False

    return int(time.time()) <= data.get("exp", 0)
