"""Serializers for turning domain models into primitives for the UI layer."""

from rest_framework import serializers


class TalkSerializer(serializers.Serializer):
    """Serializer for Talk domain model."""

    slug = serializers.CharField()
    title = serializers.CharField()
    date = serializers.CharField(allow_null=True)
    start = serializers.CharField(allow_null=True)
    duration = serializers.CharField(allow_null=True)
    room = serializers.CharField(allow_null=True)
    url = serializers.CharField(allow_null=True)


class TrackSerializer(serializers.Serializer):
    """Serializer for Track domain model."""

    slug = serializers.CharField()
    name = serializers.CharField(allow_blank=True)
    talks = TalkSerializer(many=True)


class GroupUserSerializer(serializers.Serializer):
    """Serializer for GroupUser. The PIN hash is never exposed."""

    uid = serializers.CharField()
    nickname = serializers.CharField()
    last_seen = serializers.IntegerField(allow_null=True)
    created_at = serializers.IntegerField(allow_null=True)


class AttendanceField(serializers.Field):
    """talk -> kind -> uids, with uid sets as sorted lists."""

    def to_representation(self, value):
        return {
            talk_slug: {kind.value: sorted(uids) for kind, uids in markers.items()}
            for talk_slug, markers in value.items()
        }


class StateSnapshotSerializer(serializers.Serializer):
    """Serializer for the read-only session snapshot."""

    current_user = serializers.CharField(allow_null=True)
    group_name = serializers.CharField(allow_null=True)
    nickname = serializers.CharField(allow_null=True)
    schedule = serializers.DictField(child=TrackSerializer(), allow_null=True)
    all_users = serializers.DictField(child=GroupUserSerializer())
    attendance = AttendanceField()
    current_view = serializers.CharField(source="current_view.value")
    filter_type = serializers.CharField(source="current_filter.type.value")
    filter_value = serializers.CharField(source="current_filter.value", allow_null=True)
    search_query = serializers.CharField(allow_blank=True)
    is_logged_in = serializers.BooleanField()
