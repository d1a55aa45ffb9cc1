"""
Cache invalidation signals
Automatically invalidate cached lists when catalog or revenue data changes
"""
from django.db.models.signals import post_save, post_delete, m2m_changed
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_products_cache, invalidate_revenue_dashboard_cache

logger = logging.getLogger(__name__)

CATALOG_MODELS = ('Product', 'Brand', 'Category', 'ProductSubImage')

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals for bulk operations.
    Invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_catalog_cache(sender, instance, **kwargs):
    """Invalidate products cache when products, brands, categories or sub-images change"""
    if is_suspended():
        return
    if sender._meta.app_label == 'catalog' and sender.__name__ in CATALOG_MODELS:
        invalidate_products_cache()


@receiver(m2m_changed)
def invalidate_product_categories_cache(sender, instance, action, **kwargs):
    if is_suspended() or not action.startswith('post_'):
        return
    if sender._meta.app_label == 'catalog':
        invalidate_products_cache()


@receiver([post_save, post_delete])
def invalidate_revenue_cache(sender, instance, **kwargs):
    """Invalidate the revenue dashboard when statistics rows change"""
    if is_suspended():
        return
    if sender._meta.app_label == 'revenue' and sender.__name__ == 'RevenueStatistics':
        invalidate_revenue_dashboard_cache()
