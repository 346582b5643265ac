"""
Work item serializers.
"""

from rest_framework import serializers

from apps.drafts.producer import PROCESSING_STAGES
from .models import WorkItem
from .navigation import MENU_LABELS, menu_for


class WorkItemListSerializer(serializers.ModelSerializer):
    """Compact serializer for dashboard lists."""

    has_article = serializers.BooleanField(read_only=True)
    draft_ready = serializers.BooleanField(read_only=True)
    draft_failed = serializers.BooleanField(read_only=True)
    article_title = serializers.SerializerMethodField()

    class Meta:
        model = WorkItem
        fields = [
            'id',
            'name',
            'location',
            'execution_status',
            'article_status',
            'has_article',
            'draft_ready',
            'draft_failed',
            'article_title',
            'updated_at',
        ]

    def get_article_title(self, obj):
        return (obj.article_data or {}).get('article_title')


class WorkItemDetailSerializer(serializers.ModelSerializer):
    has_article = serializers.BooleanField(read_only=True)
    draft_ready = serializers.BooleanField(read_only=True)
    draft_failed = serializers.BooleanField(read_only=True)
    image_pair_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = WorkItem
        fields = [
            'id',
            'name',
            'location',
            'execution_status',
            'article_status',
            'article_data',
            'draft_produced_at',
            'has_article',
            'draft_ready',
            'draft_failed',
            'image_pair_count',
            'metadata',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


# =============================================================================
# Command payloads
# =============================================================================

class CoordinatesSerializer(serializers.Serializer):
    lat = serializers.FloatField()
    lng = serializers.FloatField()


class LocationSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    coordinates = CoordinatesSerializer(required=False)


class IntakeImageSerializer(serializers.Serializer):
    id = serializers.JSONField(required=False)
    url = serializers.CharField()
    caption = serializers.CharField(required=False, allow_blank=True)


class IntakeSerializer(serializers.Serializer):
    """
    Validates the intake payload shape; counts and content rules are
    enforced by the state machine.
    """
    description = serializers.CharField(allow_blank=True, trim_whitespace=False)
    images = IntakeImageSerializer(many=True, allow_empty=True)
    location = LocationSerializer(required=False, allow_null=True)


class EditBodySerializer(serializers.Serializer):
    article_body = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ExecutionStatusSerializer(serializers.Serializer):
    execution_status = serializers.ChoiceField(choices=WorkItem.EXECUTION_STATUS_CHOICES)


class RoleSerializer(serializers.Serializer):
    role = serializers.CharField()


class NavigateSerializer(serializers.Serializer):
    view = serializers.CharField()


# =============================================================================
# Session
# =============================================================================

class SessionStateSerializer(serializers.Serializer):
    """Navigation state plus what the current screen needs to render."""

    def to_representation(self, state):
        data = state.to_dict()
        data['menu'] = [
            {'view': view, 'label': MENU_LABELS[view]}
            for view in menu_for(state.role)
        ]
        data['processing_stages'] = list(PROCESSING_STAGES)
        return data
