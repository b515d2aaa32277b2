from django.utils.translation import gettext as _
from rest_framework import serializers

from backend.core.utils import validate_same_business
from .models import WikiPage, WikiPageVersion


def clean_tags(tags):
    """Strip, drop empties and de-duplicate while keeping order"""
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class WikiPageListSerializer(serializers.ModelSerializer):
    parent_slug = serializers.CharField(source='parent.slug', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    updated_by_name = serializers.CharField(source='updated_by.username', read_only=True, default=None)

    class Meta:
        model = WikiPage
        fields = [
            'id', 'slug', 'title', 'parent', 'parent_slug', 'tags', 'version', 'is_published',
            'created_by_name', 'updated_by_name', 'created_at', 'updated_at'
        ]


class WikiPageSerializer(serializers.ModelSerializer):
    parent = serializers.PrimaryKeyRelatedField(queryset=WikiPage.objects.all(), required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50, allow_blank=True), required=False)
    parent_slug = serializers.CharField(source='parent.slug', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    updated_by_name = serializers.CharField(source='updated_by.username', read_only=True, default=None)
    breadcrumbs = serializers.SerializerMethodField()
    children = serializers.SerializerMethodField()

    class Meta:
        model = WikiPage
        fields = [
            'id', 'slug', 'title', 'content', 'parent', 'parent_slug', 'tags', 'version', 'is_published',
            'breadcrumbs', 'children', 'created_by', 'created_by_name', 'updated_by', 'updated_by_name',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['slug', 'version', 'created_by', 'updated_by', 'created_at', 'updated_at']

    def get_breadcrumbs(self, obj):
        return [{'id': page.id, 'slug': page.slug, 'title': page.title} for page in obj.ancestors()]

    def get_children(self, obj):
        user = self.context.get('user')
        children = obj.children.order_by('title')
        return [
            {'id': child.id, 'slug': child.slug, 'title': child.title}
            for child in children
            if user is None or child.is_visible_to(user)
        ]

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError(_('Title cannot be empty.'))
        return value.strip()

    def validate_tags(self, value):
        return clean_tags(value)

    def validate(self, attrs):
        parent = attrs.get('parent')
        business = self.context.get('business')
        if parent is not None and business is not None:
            errors = validate_same_business(business, parent=parent)
            if errors:
                raise serializers.ValidationError(errors)
        if parent is not None and self.instance is not None and self.instance.would_create_cycle(parent):
            raise serializers.ValidationError({'parent': [_('A page cannot be moved under itself or its descendants.')]})
        return attrs


class WikiPageVersionSerializer(serializers.ModelSerializer):
    updated_by_name = serializers.CharField(source='updated_by.username', read_only=True, default=None)

    class Meta:
        model = WikiPageVersion
        fields = ['id', 'version', 'title', 'content', 'tags', 'updated_by', 'updated_by_name', 'updated_at']
