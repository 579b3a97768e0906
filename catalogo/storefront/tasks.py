import logging

from celery import shared_task

from .services.media_service import release_media
from .services.tenant import TenantContext

logger = logging.getLogger(__name__)


def _release_for_store(store_id, assets):
    from .models import Store

    store = Store.objects.filter(pk=store_id).first()
    if store is None:
        logger.warning("Store %s no longer exists; skipping media release", store_id)
        return {"created": 0, "failed": 0, "errors": []}
    result = release_media(TenantContext(store=store), [tuple(asset) for asset in assets])
    return {"created": result.created, "failed": result.failed, "errors": result.errors}


@shared_task(bind=True, ignore_result=True)
def release_product_media_task(self, store_id, assets):
    """
    Delete the CDN assets of a removed product.

    Args:
        store_id: Owner store of the assets.
        assets: List of ``[public_id, resource_type]`` pairs.
    """
    summary = _release_for_store(store_id, assets)
    if summary["failed"]:
        logger.warning(
            "Released %s of %s assets for store %s",
            summary["created"],
            summary["created"] + summary["failed"],
            store_id,
        )
    return summary


def queue_media_release(store_id, assets):
    """
    Queue the release task, running it inline when the broker is
    unavailable so deletions never block on Redis.
    """
    assets = [list(asset) for asset in assets]
    if not assets:
        return
    try:
        release_product_media_task.delay(store_id, assets)
    except Exception as exc:
        logger.warning(
            "Could not queue media release for store %s: %s",
            store_id,
            exc,
            exc_info=True,
        )
        _release_for_store(store_id, assets)
