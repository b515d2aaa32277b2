"""Utility functions for audit logging, tenant scoping and list responses"""
import logging

from django.core.paginator import Paginator
from django.utils.text import slugify
from django.utils.translation import gettext as _
from rest_framework.response import Response

from .models import AuditLog

logger = logging.getLogger('backend.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, business=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (signup, invite, role_change, delete, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., task title, user email)
        business: Optional tenant override (defaults to the acting user's business)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        if audit_user is not None and not audit_user.is_authenticated:
            audit_user = None

        if business is None and audit_user is not None:
            business = audit_user.business

        if not action or not model_name or object_id is None:
            logger.warning(
                f"Audit log creation skipped: missing required fields "
                f"(action={action}, model_name={model_name}, object_id={object_id})"
            )
            return None

        return AuditLog.objects.create(
            business=business,
            user=audit_user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def validate_same_business(business, **related):
    """
    Return a dict of field -> error for related objects outside `business`.
    None values are skipped.
    """
    errors = {}
    for field, obj in related.items():
        if obj is None:
            continue
        if getattr(obj, 'business_id', None) != business.id:
            errors[field] = [_('Object does not belong to your business.')]
    return errors


def paginated_response(request, queryset, serializer_class, context=None, default_limit=50):
    """Paginate `queryset` with ?page=&limit= and wrap it in the list envelope"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), 200)
    except (TypeError, ValueError):
        page, limit = 1, default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


def unique_slug(model, business_id, value, exclude_pk=None, fallback='item', max_length=120):
    """Slugify `value` and suffix -2, -3, ... until it is unique within the business"""
    base = slugify(value or '', allow_unicode=True)[:max_length - 6].strip('-') or fallback
    queryset = model.objects.filter(business_id=business_id)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)

    slug = base
    suffix = 2
    while queryset.filter(slug=slug).exists():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug
