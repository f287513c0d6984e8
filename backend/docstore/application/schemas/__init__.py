from .auth import UserCredentials

__all__ = [
    "UserCredentials",
]
