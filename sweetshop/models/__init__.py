from sweetshop.models.sweet import Sweet
from sweetshop.models.user import AuthSession, User

__all__ = ["Sweet", "User", "AuthSession"]
