# users/urls.py

from django.urls import path

from security.views import RecaptchaSiteKeyView, RecaptchaVerifyView

from .views import FirebaseSignInView, LoginView, MeView, RegisterView, SignOutView

app_name = "users"

urlpatterns = [
    # ---------------- PUBLIC AUTH ----------------
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("firebase/", FirebaseSignInView.as_view(), name="firebase-sign-in"),
    path("logout/", SignOutView.as_view(), name="logout"),
    path("verify-recaptcha/", RecaptchaVerifyView.as_view(), name="verify-recaptcha"),
    path("recaptcha-site-key/", RecaptchaSiteKeyView.as_view(), name="recaptcha-site-key"),
    # ---------------- AUTHENTICATED ----------------
    path("me/", MeView.as_view(), name="me"),
]
