# users/services/auth_service.py

"""
SOCIAL SIGN-IN + SIGN-OUT

sign_in_with_firebase:
- verify the Firebase ID token
- find the user by firebase UID, then by email (links the account)
- create a customer profile when missing, names split from the display name
- back-fill names/photo on existing profiles that lack them
- issue a SimpleJWT pair

sign_out:
- blacklist the refresh token
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from common.errors import AuthenticationError
from permissions.roles import ROLE_CUSTOMER
from users.models import User
from users.services.firebase import verify_firebase_id_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignInResult:
    user: User
    access: str
    refresh: str
    created: bool


def extract_name_from_display_name(display_name) -> tuple[str, str]:
    """'Ada King Lovelace' -> ('Ada', 'King Lovelace')."""
    parts = (display_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def combine_name_to_display_name(first_name, last_name) -> str:
    return " ".join(p.strip() for p in (first_name or "", last_name or "") if p and p.strip())


def issue_tokens(user: User) -> tuple[str, str]:
    refresh = RefreshToken.for_user(user)
    return str(refresh.access_token), str(refresh)


def _backfill_profile(user: User, *, uid: str, claims: dict) -> None:
    display_name = (claims.get("name") or "").strip()
    first_name, last_name = extract_name_from_display_name(display_name)

    changed = []
    if not user.firebase_uid:
        user.firebase_uid = uid
        changed.append("firebase_uid")
    if not user.first_name and first_name:
        user.first_name = first_name
        changed.append("first_name")
    if not user.last_name and last_name:
        user.last_name = last_name
        changed.append("last_name")
    if not user.display_name and (display_name or user.full_name):
        user.display_name = display_name or user.full_name
        changed.append("display_name")
    if not user.photo_url and claims.get("picture"):
        user.photo_url = claims["picture"]
        changed.append("photo_url")
    if claims.get("email_verified") and not user.email_verified:
        user.email_verified = True
        changed.append("email_verified")

    if changed:
        user.save(update_fields=[*changed, "updated_at"])


def sign_in_with_firebase(id_token: str) -> SignInResult:
    if not id_token:
        raise AuthenticationError("Failed to sign in with Google")

    try:
        claims = verify_firebase_id_token(id_token)
    except (ValueError, OSError, FirebaseError, GoogleAuthError) as exc:
        logger.warning("Firebase ID token rejected", extra={"reason": str(exc)})
        raise AuthenticationError("Failed to sign in with Google") from exc

    uid = claims.get("uid") or claims.get("sub")
    email = (claims.get("email") or "").strip().lower()
    if not uid or not email:
        raise AuthenticationError("Failed to sign in with Google")

    created = False
    with transaction.atomic():
        user = (
            User.objects.select_for_update().filter(firebase_uid=uid).first()
            or User.objects.select_for_update().filter(email__iexact=email).first()
        )

        if user is None:
            display_name = (claims.get("name") or "").strip()
            first_name, last_name = extract_name_from_display_name(display_name)
            user = User.objects.create_user(
                email=email,
                firebase_uid=uid,
                first_name=first_name,
                last_name=last_name,
                display_name=display_name,
                photo_url=claims.get("picture") or "",
                email_verified=bool(claims.get("email_verified")),
                role=ROLE_CUSTOMER,
            )
            created = True
            logger.info("Customer profile created", extra={"user_id": str(user.id)})
        else:
            _backfill_profile(user, uid=uid, claims=claims)

    if not user.is_active:
        raise AuthenticationError("User account is disabled")

    access, refresh = issue_tokens(user)
    return SignInResult(user=user, access=access, refresh=refresh, created=created)


def sign_out(refresh_token: str) -> None:
    if not refresh_token:
        raise AuthenticationError("Failed to sign out")
    try:
        RefreshToken(refresh_token).blacklist()
    except TokenError as exc:
        raise AuthenticationError("Failed to sign out") from exc
