from django.db import models
from backend.core.models import Business, User
from backend.core.utils import unique_slug


class WikiPage(models.Model):
    """Wiki page; `version` increments on every title or content change"""
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='wiki_pages')
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=120, allow_unicode=True, blank=True)
    content = models.TextField(blank=True, help_text="HTML content")
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    tags = models.JSONField(default=list, blank=True)
    version = models.PositiveIntegerField(default=1)
    is_published = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_wiki_pages')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='updated_wiki_pages')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(WikiPage, self.business_id, self.title, exclude_pk=self.pk, fallback='page')
        super().save(*args, **kwargs)

    def ancestors(self):
        """Ancestor chain, root first"""
        chain = []
        seen = {self.pk}
        node = self.parent
        while node is not None and node.pk not in seen:
            chain.append(node)
            seen.add(node.pk)
            node = node.parent
        chain.reverse()
        return chain

    def would_create_cycle(self, new_parent):
        """True if making `new_parent` the parent puts this page in its own ancestry"""
        node = new_parent
        seen = set()
        while node is not None and node.pk not in seen:
            if node.pk == self.pk:
                return True
            seen.add(node.pk)
            node = node.parent
        return False

    def is_visible_to(self, user):
        return self.is_published or self.created_by_id == user.id or user.is_business_manager

    def snapshot(self):
        """Store the current state as a version row"""
        return WikiPageVersion.objects.create(
            page=self,
            version=self.version,
            title=self.title,
            content=self.content,
            tags=list(self.tags or []),
            updated_by=self.updated_by,
            updated_at=self.updated_at,
        )

    class Meta:
        db_table = 'wiki_pages'
        ordering = ['title']
        constraints = [
            models.UniqueConstraint(fields=['business', 'slug'], name='uniq_wiki_slug_per_business'),
        ]


class WikiPageVersion(models.Model):
    """Snapshot of a previous page version"""
    page = models.ForeignKey(WikiPage, on_delete=models.CASCADE, related_name='versions')
    version = models.PositiveIntegerField()
    title = models.CharField(max_length=255)
    content = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='wiki_page_versions')
    updated_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.page.title} v{self.version}"

    class Meta:
        db_table = 'wiki_page_versions'
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(fields=['page', 'version'], name='uniq_wiki_page_version'),
        ]
