from django.contrib import admin
from .models import WikiPage, WikiPageVersion


class WikiPageVersionInline(admin.TabularInline):
    model = WikiPageVersion
    extra = 0
    fields = ['version', 'title', 'updated_by', 'updated_at']
    readonly_fields = fields


@admin.register(WikiPage)
class WikiPageAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'business', 'parent', 'version', 'is_published', 'updated_at']
    list_filter = ['is_published', 'updated_at']
    search_fields = ['title', 'slug', 'content', 'business__name']
    readonly_fields = ['version', 'created_at', 'updated_at']
    inlines = [WikiPageVersionInline]
