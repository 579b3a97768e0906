"""
Shared pieces of the owner and public APIs: tenant resolution, error
responses and cursor-paged list responses.
"""
import logging

from django.core.exceptions import PermissionDenied
from rest_framework import permissions, status
from rest_framework.response import Response

from .services.pagination import (
    InvalidCursor,
    InvalidFilter,
    PageLoadError,
    QuerySetSource,
    page_payload,
    paginate,
)
from .services.tenant import tenant_for_user

logger = logging.getLogger(__name__)


def error_response(message, http_status=status.HTTP_400_BAD_REQUEST, **extra):
    return Response({'success': False, 'error': message, **extra}, status=http_status)


class IsStoreOwner(permissions.BasePermission):
    """Authenticated user that owns a store."""

    message = 'Este usuario no tiene una tienda.'

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        try:
            view.get_tenant()
        except PermissionDenied:
            return False
        return True


class TenantMixin:
    """Resolves and caches the ``TenantContext`` of the requesting owner."""

    permission_classes = [IsStoreOwner]

    def get_tenant(self):
        tenant = getattr(self.request, '_tenant', None)
        if tenant is None:
            tenant = tenant_for_user(self.request.user)
            self.request._tenant = tenant
        return tenant

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['tenant'] = self.get_tenant()
        return context


def paged_response(request, queryset, serializer_class, *, page_size, filters=None, filter_fields=None, context=None):
    """
    Run one cursor-paged request from ``?direction=`` and ``?cursor=``.

    Invalid cursors and filter values are a 400; a failing source is a 503.
    """
    source = QuerySetSource(queryset, filter_fields=filter_fields)
    try:
        pager = paginate(
            source,
            page_size=page_size,
            direction=request.query_params.get('direction') or 'first',
            filters=filters,
            cursor=request.query_params.get('cursor'),
        )
    except (InvalidCursor, InvalidFilter) as exc:
        return error_response(str(exc))
    except PageLoadError as exc:
        return error_response(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

    results = serializer_class(pager.items, many=True, context=context or {}).data
    return Response({'success': True, **page_payload(pager, results)})
