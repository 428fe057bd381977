from datetime import timedelta

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()

REMEMBER_ME_LIFETIME = timedelta(days=30)


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "full_name",
            "phone",
            "role",
            "date_joined",
        ]
        read_only_fields = ["id", "email", "role", "date_joined"]


class RegisterSerializer(serializers.ModelSerializer):
    """Patient self-registration. Lab staff accounts are created from the admin."""

    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = [
            "email",
            "password",
            "first_name",
            "last_name",
            "phone",
        ]
        extra_kwargs = {
            "first_name": {"required": True, "allow_blank": False},
            "last_name": {"required": True, "allow_blank": False},
            "phone": {"required": True, "allow_blank": False},
        }

    def validate_email(self, value: str) -> str:
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def create(self, validated_data):
        email = validated_data.pop("email")
        return User.objects.create_user(
            username=email,
            email=email,
            password=validated_data.pop("password"),
            first_name=validated_data.pop("first_name").strip(),
            last_name=validated_data.pop("last_name").strip(),
            role=User.ROLE_USER,
            **validated_data,
        )


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Email + password login.

    Accounts are created with the lowercased email as username, so the email
    is mapped onto SimpleJWT's username field. ``remember`` stretches the
    refresh token to thirty days.
    """

    username_field = User.USERNAME_FIELD

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["email"] = serializers.EmailField()
        self.fields["remember"] = serializers.BooleanField(required=False, default=False)
        self.fields[self.username_field].required = False

    def validate(self, attrs):
        attrs[self.username_field] = attrs.pop("email").strip().lower()
        remember = attrs.pop("remember", False)
        data = super().validate(attrs)
        if remember:
            refresh = self.get_token(self.user)
            refresh.set_exp(lifetime=REMEMBER_ME_LIFETIME)
            data["refresh"] = str(refresh)
            data["access"] = str(refresh.access_token)
        data["role"] = self.user.role
        data["user"] = UserSerializer(self.user).data
        return data


class LabStaffTokenObtainPairSerializer(EmailTokenObtainPairSerializer):
    """Login for the lab dashboard; patients get the same error as a bad password."""

    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_lab_staff:
            raise AuthenticationFailed("Invalid email or password.", code="not_lab_staff")
        data["admin"] = {
            "id": self.user.pk,
            "name": self.user.full_name,
            "email": self.user.email,
            "role": self.user.role,
        }
        return data


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["first_name", "last_name", "phone"]
