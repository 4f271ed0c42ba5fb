from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from common.validation import is_valid_phone_number
from permissions.roles import ROLE_CUSTOMER
from users.services.auth_service import combine_name_to_display_name

User = get_user_model()


# ---------------- REGISTER ----------------
class RegisterSerializer(serializers.ModelSerializer):
    """Public self-registration always creates a customer."""

    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={"input_type": "password"},
    )

    class Meta:
        model = User
        fields = [
            "email",
            "password",
            "first_name",
            "last_name",
            "phone",
        ]

    def validate_phone(self, value):
        if value and not is_valid_phone_number(value):
            raise serializers.ValidationError("phone is invalid")
        return value

    def create(self, validated_data):
        first_name = validated_data.get("first_name", "")
        last_name = validated_data.get("last_name", "")
        return User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password"],
            first_name=first_name,
            last_name=last_name,
            display_name=combine_name_to_display_name(first_name, last_name),
            phone=validated_data.get("phone", ""),
            role=ROLE_CUSTOMER,
        )


# ---------------- LOGIN (INPUT ONLY) ----------------
class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
    )


class FirebaseSignInSerializer(serializers.Serializer):
    id_token = serializers.CharField()


class SignOutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


# ---------------- USER OUTPUT ----------------
class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "photo_url",
            "phone",
            "email_verified",
            "role",
        ]
        read_only_fields = ["id", "email", "email_verified", "role"]


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["first_name", "last_name", "photo_url", "phone"]

    def validate_phone(self, value):
        if value and not is_valid_phone_number(value):
            raise serializers.ValidationError("phone is invalid")
        return value

    def update(self, instance, validated_data):
        for key, value in validated_data.items():
            setattr(instance, key, value)
        if "first_name" in validated_data or "last_name" in validated_data:
            instance.display_name = combine_name_to_display_name(
                instance.first_name, instance.last_name
            )
        instance.save()
        return instance
