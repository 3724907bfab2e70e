"""Django signals for key-tree change notification."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from talks.models import TreeNode
from talks.stores.django_store import node_changed


@receiver([post_save, post_delete], sender=TreeNode)
def notify_tree_subscribers(sender, instance, **kwargs):
    """Push the change to every live DjangoTreeStore watching an overlapping path."""
    node_changed(instance.path)
