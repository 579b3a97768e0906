import logging

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from storefront.models import Store

from .serializers import LoginSerializer, RegisterSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


class RegisterView(APIView):
    """
    POST /api/accounts/register/

    Creates the user and its store in one transaction and logs the user in.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=data['email'],
                    email=data['email'],
                    password=data['password'],
                )
                store = Store.objects.create(
                    owner=user,
                    name=data['store_name'],
                    slug=data['slug'],
                    whatsapp=data['whatsapp'],
                )
        except IntegrityError as exc:
            # Lost a race on the slug or the username
            logger.warning("Registration conflict for %s / %s: %s", data['email'], data['slug'], exc)
            return Response(
                {'success': False, 'errors': {'slug': ["Ese slug ya está en uso, elige otro."]}},
                status=status.HTTP_400_BAD_REQUEST,
            )

        login(request, user)
        logger.info("Registered store %s (%s) for user %s", store.slug, store.pk, user.pk)
        return Response({
            'success': True,
            'store': {'id': store.pk, 'name': store.name, 'slug': store.slug},
        }, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        user = authenticate(
            request,
            username=serializer.validated_data['email'].strip().lower(),
            password=serializer.validated_data['password'],
        )
        if user is None:
            return Response(
                {'success': False, 'error': 'Email o contraseña incorrectos.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        login(request, user)
        return Response({'success': True})


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        logout(request)
        return Response({'success': True})
