from django.contrib.auth import get_user_model, password_validation
from django.core.exceptions import ValidationError
from django.utils.text import slugify
from rest_framework import serializers

from storefront.models import Store

User = get_user_model()


class RegisterSerializer(serializers.Serializer):
    """
    Merchant sign-up: a user account plus its store.

    Fields:
        - email, password: credentials (required)
        - store_name: business name (required)
        - slug: public URL of the store; suggested from the name when blank
        - whatsapp: number that receives the orders (required)
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    store_name = serializers.CharField(max_length=120)
    slug = serializers.CharField(max_length=80, required=False, allow_blank=True)
    whatsapp = serializers.CharField(max_length=20)

    def validate_email(self, value):
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exists() or User.objects.filter(username=email).exists():
            raise serializers.ValidationError("Este email ya está registrado.")
        return email

    def validate_password(self, value):
        try:
            password_validation.validate_password(value)
        except ValidationError as exc:
            raise serializers.ValidationError(list(exc.messages))
        return value

    def validate_whatsapp(self, value):
        digits = ''.join(ch for ch in value if ch.isdigit())
        if not 7 <= len(digits) <= 15:
            raise serializers.ValidationError("Número de WhatsApp inválido.")
        return digits

    def validate(self, attrs):
        store_name = attrs['store_name'].strip()
        if not store_name:
            raise serializers.ValidationError({'store_name': "El nombre del negocio es obligatorio."})
        slug = slugify(attrs.get('slug') or store_name)
        if not slug:
            raise serializers.ValidationError({'slug': "El slug del negocio es obligatorio."})
        if Store.objects.filter(slug=slug).exists():
            raise serializers.ValidationError({'slug': "Ese slug ya está en uso, elige otro."})
        attrs['store_name'] = store_name
        attrs['slug'] = slug
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
