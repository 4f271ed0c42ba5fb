"""
USER AUTH VIEWS

- Register / Login: email + password, JWT pair returned on login
- Firebase sign-in: exchange a Firebase ID token for a JWT pair
- Sign out: blacklist the refresh token

Throttled with targeted anon scopes.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from users.serializers import (
    FirebaseSignInSerializer,
    LoginSerializer,
    RegisterSerializer,
    SignOutSerializer,
    UserSerializer,
)
from users.services.auth_service import issue_tokens, sign_in_with_firebase, sign_out
from users.models import User


class AuthAnonThrottle(AnonRateThrottle):
    scope = "anon"


# ---------------- REGISTER ----------------
class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthAnonThrottle]

    @extend_schema(request=RegisterSerializer, responses={201: UserSerializer})
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        return Response(
            {
                "message": "User registered successfully",
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


# ---------------- LOGIN ----------------
class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthAnonThrottle]

    @extend_schema(
        request=LoginSerializer,
        responses={
            200: OpenApiResponse(description="JWT pair + user"),
            400: OpenApiResponse(description="Invalid email or password"),
        },
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data["email"]
        password = serializer.validated_data["password"]

        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            return Response(
                {"detail": "Invalid email or password"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not user.is_active:
            return Response(
                {"detail": "User account is disabled"},
                status=status.HTTP_403_FORBIDDEN,
            )

        access, refresh = issue_tokens(user)
        return Response(
            {"access": access, "refresh": refresh, "user": UserSerializer(user).data}
        )


# ---------------- FIREBASE SIGN-IN ----------------
class FirebaseSignInView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthAnonThrottle]

    @extend_schema(
        request=FirebaseSignInSerializer,
        responses={
            200: OpenApiResponse(description="JWT pair + user"),
            401: OpenApiResponse(description="Failed to sign in with Google"),
        },
    )
    def post(self, request):
        serializer = FirebaseSignInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = sign_in_with_firebase(serializer.validated_data["id_token"])
        return Response(
            {
                "access": result.access,
                "refresh": result.refresh,
                "created": result.created,
                "user": UserSerializer(result.user).data,
            }
        )


# ---------------- SIGN OUT ----------------
class SignOutView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(request=SignOutSerializer, responses={200: OpenApiResponse(description="Signed out")})
    def post(self, request):
        serializer = SignOutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sign_out(serializer.validated_data["refresh"])
        return Response({"message": "Signed out"})
