from django.contrib import admin

from talks.models import TreeNode


@admin.register(TreeNode)
class TreeNodeAdmin(admin.ModelAdmin):
    list_display = ["path", "value", "updated_at"]
    search_fields = ["path"]
    ordering = ["path"]
