"""
Cache invalidation signals
Automatically invalidate cache when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .model_cache import invalidate_garage_cache, invalidate_user_roles

logger = logging.getLogger(__name__)


# --- Role tables ---

@receiver(post_save, sender='parties.Admin')
@receiver(post_delete, sender='parties.Admin')
@receiver(post_save, sender='parties.Manager')
@receiver(post_delete, sender='parties.Manager')
@receiver(post_save, sender='parties.Valet')
@receiver(post_delete, sender='parties.Valet')
def invalidate_roles_on_role_change(sender, instance, **kwargs):
    invalidate_user_roles(instance.pk)


# --- Garages ---

@receiver(post_save, sender='garages.Garage')
@receiver(post_delete, sender='garages.Garage')
def invalidate_garage_on_change(sender, instance, **kwargs):
    invalidate_garage_cache(instance.pk)


@receiver(post_save, sender='garages.Address')
@receiver(post_delete, sender='garages.Address')
@receiver(post_save, sender='garages.Slot')
@receiver(post_delete, sender='garages.Slot')
@receiver(post_save, sender='garages.Verification')
@receiver(post_delete, sender='garages.Verification')
@receiver(post_save, sender='garages.Review')
@receiver(post_delete, sender='garages.Review')
def invalidate_garage_on_related_change(sender, instance, **kwargs):
    invalidate_garage_cache(instance.garage_id)


@receiver(post_save, sender='parties.Company')
def invalidate_garages_on_company_change(sender, instance, **kwargs):
    from backend.garages.models import Garage

    for garage_id in Garage.objects.filter(company_id=instance.pk).values_list('pk', flat=True):
        invalidate_garage_cache(garage_id)
