import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsBusinessMember
from backend.core.utils import create_audit_log
from .models import WikiPage, WikiPageVersion
from .serializers import WikiPageSerializer, WikiPageListSerializer, WikiPageVersionSerializer

logger = logging.getLogger('backend.wiki')


def visible_pages(request):
    """Published pages plus the caller's drafts; managers see everything"""
    queryset = WikiPage.objects.filter(business_id=request.user.business_id)
    if not request.user.is_business_manager:
        queryset = queryset.filter(Q(is_published=True) | Q(created_by=request.user))
    return queryset.select_related('parent', 'created_by', 'updated_by')


def get_visible_page(request, slug):
    return get_object_or_404(visible_pages(request), slug=slug)


def detail_context(request):
    return {'user': request.user, 'business': request.user.business}


@api_view(['GET', 'POST'])
@permission_classes([IsBusinessMember])
def page_list_create(request):
    """List wiki pages (optionally children of ?parent=<id|root>) or create a page"""
    if request.method == 'GET':
        pages = visible_pages(request)
        parent = request.query_params.get('parent', None)
        if parent == 'root':
            pages = pages.filter(parent__isnull=True)
        elif parent:
            if not parent.isdigit():
                return Response({'error': _('Invalid parent.')}, status=status.HTTP_400_BAD_REQUEST)
            pages = pages.filter(parent_id=int(parent))
        tag = request.query_params.get('tag', None)
        pages = list(pages.order_by('title'))
        if tag:
            pages = [page for page in pages if tag in (page.tags or [])]
        return Response(WikiPageListSerializer(pages, many=True).data)

    serializer = WikiPageSerializer(data=request.data, context=detail_context(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        page = serializer.save(business=request.user.business, created_by=request.user, updated_by=request.user)
    except IntegrityError:
        logger.warning(f"Wiki slug conflict for '{serializer.validated_data.get('title')}'", exc_info=True)
        return Response({'error': _('A page with this title already exists.')}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Wiki page {page.slug} created by {request.user.email}")
    return Response(WikiPageSerializer(page, context=detail_context(request)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def page_tree(request):
    """Nested page tree; pages whose parent is hidden appear at the top level"""
    pages = list(visible_pages(request).order_by('title'))
    nodes = {
        page.id: {'id': page.id, 'slug': page.slug, 'title': page.title,
                  'is_published': page.is_published, 'children': []}
        for page in pages
    }
    roots = []
    for page in pages:
        if page.parent_id in nodes:
            nodes[page.parent_id]['children'].append(nodes[page.id])
        else:
            roots.append(nodes[page.id])
    return Response(roots)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsBusinessMember])
def page_detail(request, slug):
    """Retrieve, update (new version on title/content change) or delete a page"""
    page = get_visible_page(request, slug)

    if request.method == 'GET':
        return Response(WikiPageSerializer(page, context=detail_context(request)).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = WikiPageSerializer(
            page, data=request.data, partial=request.method == 'PATCH', context=detail_context(request)
        )
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        changed = (
            ('title' in data and data['title'] != page.title) or
            ('content' in data and data['content'] != page.content)
        )
        with transaction.atomic():
            if changed:
                page.snapshot()
                serializer.save(updated_by=request.user, version=page.version + 1)
            else:
                serializer.save(updated_by=request.user)

        logger.info(f"Wiki page {page.slug} updated by {request.user.email} (version {page.version})")
        return Response(WikiPageSerializer(page, context=detail_context(request)).data)

    # DELETE
    if not request.user.is_business_manager:
        logger.warning(f"User {request.user.email} attempted to delete wiki page {page.slug} without manager role")
        return Response({'error': _('Only managers can delete wiki pages.')}, status=status.HTTP_403_FORBIDDEN)

    with transaction.atomic():
        reparented = page.children.update(parent=page.parent)
        create_audit_log(
            request=request, action='delete', model_name='WikiPage', object_id=page.id,
            object_name=page.title, changes={'slug': page.slug, 'reparented_children': reparented},
        )
        page.delete()

    logger.info(f"Wiki page {slug} deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def page_versions(request, slug):
    """Previous versions of a page, newest first"""
    page = get_visible_page(request, slug)
    versions = page.versions.select_related('updated_by').order_by('-version')
    return Response({
        'current_version': page.version,
        'versions': WikiPageVersionSerializer(versions, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsBusinessMember])
def page_version_restore(request, slug, version):
    """Restore an old version; the restore is saved as a new version"""
    page = get_visible_page(request, slug)
    old = get_object_or_404(WikiPageVersion, page=page, version=version)

    with transaction.atomic():
        page.snapshot()
        page.title = old.title
        page.content = old.content
        page.tags = list(old.tags or [])
        page.version += 1
        page.updated_by = request.user
        page.save()

    create_audit_log(
        request=request, action='wiki_restore', model_name='WikiPage', object_id=page.id,
        object_name=page.title, changes={'restored_version': version, 'new_version': page.version},
    )
    logger.info(f"Wiki page {page.slug} restored to version {version} by {request.user.email}")
    return Response(WikiPageSerializer(page, context=detail_context(request)).data)


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def page_search(request):
    """Case-insensitive search over title, content and tags"""
    query = request.query_params.get('q', '').strip()
    if not query:
        return Response([])

    needle = query.lower()
    pages = visible_pages(request).order_by('title')
    matches = [
        page for page in pages
        if needle in page.title.lower()
        or needle in (page.content or '').lower()
        or any(needle in tag.lower() for tag in (page.tags or []))
    ]
    return Response(WikiPageListSerializer(matches, many=True).data)
