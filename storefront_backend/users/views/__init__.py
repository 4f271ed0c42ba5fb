from .auth import FirebaseSignInView, LoginView, RegisterView, SignOutView
from .me import MeView

__all__ = [
    "RegisterView",
    "LoginView",
    "FirebaseSignInView",
    "SignOutView",
    "MeView",
]
