# app/core/limiter.py

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# --- Функция-ключ для идентификации запросов ---

def key_func(request: Request) -> str:
    """
    Определяет, как идентифицировать запрос для применения лимита.
    Приоритет: ID пользователя (если уже авторизован) -> IP-адрес.
    """
    user = getattr(request.state, "user", None)
    if user is not None and user.id:
        return str(user.id)
    return get_remote_address(request)

# Хранилище счетчиков: "memory://" для одного процесса,
# "redis://host:port" для нескольких воркеров
limiter = Limiter(
    key_func=key_func,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="moving-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
