from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Hora actual en UTC, sin tzinfo (así se guarda en la base de datos)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalizar un datetime a UTC ingenuo; los ingenuos se tratan como UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def naive_clock(clock: Clock) -> Clock:
    """Envolver un reloj inyectado para que siempre devuelva UTC ingenuo"""
    return lambda: as_utc_naive(clock())
