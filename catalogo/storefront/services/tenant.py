"""
Explicit tenant context passed into services instead of ambient state.
"""
from __future__ import annotations

from dataclasses import dataclass

from django.core.exceptions import PermissionDenied


@dataclass(frozen=True)
class TenantContext:
    store: object

    @property
    def store_id(self):
        return self.store.pk

    def media_folder(self, kind: str) -> str:
        return f"stores/{self.store_id}/{'videos' if kind == 'videos' else 'products'}"


def tenant_for_user(user) -> TenantContext:
    """
    Context for the store owned by ``user``; raises ``PermissionDenied``
    when the user has none.
    """
    from ..models import Store

    if not getattr(user, 'is_authenticated', False):
        raise PermissionDenied("Login required")
    store = Store.objects.filter(owner=user).order_by('created_at').first()
    if store is None:
        raise PermissionDenied("Este usuario no tiene una tienda.")
    return TenantContext(store=store)
