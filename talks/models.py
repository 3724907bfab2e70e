"""Django ORM models (persistence layer).

The key tree is stored one row per leaf, keyed by its full path. Domain
logic lives in domain/ and never sees these rows.
"""

from django.db import models


class TreeNode(models.Model):
    """Persistence model for one leaf of the key tree."""

    path = models.CharField(max_length=512, unique=True)
    value = models.JSONField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["path"]

    def __str__(self) -> str:
        return self.path
