"""Shared helpers: audit logging, list pagination, query parsing, text and date utilities"""
import json
import logging
import secrets
import string
import unicodedata
import uuid
from datetime import datetime, time, timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from .models import AuditLog

User = get_user_model()

logger = logging.getLogger(__name__)

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')
PASSWORD_CHARS = string.ascii_uppercase + string.ascii_lowercase + string.digits + '!@#$%^&*()'


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
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, soft_delete, order_status, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
        object_reference: Reference identifier (e.g., order number, voucher code)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=json.loads(json.dumps(changes or {}, default=str)),
            ip_address=ip_address
        )
    except Exception as e:
        # Audit failures never break the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def diff_changes(old_data, new_data):
    """Build an {field: {'old', 'new'}} dict for fields whose value changed"""
    return {
        key: {'old': old_data.get(key), 'new': new_data.get(key)}
        for key in old_data
        if old_data.get(key) != new_data.get(key)
    }


# Query parameter parsing

def parse_bool(value, default=None):
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return default


def parse_int(value, default=None, minimum=None):
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and number < minimum:
        return minimum
    return number


def parse_id_list(params, key):
    """
    Read a list of integer ids from query params.

    Accepts repeated keys (inIds[]=1&inIds[]=2 or inIds=1&inIds=2)
    and comma separated values (inIds=1,2).
    """
    raw_values = params.getlist(f'{key}[]') or params.getlist(key)
    ids = []
    for raw in raw_values:
        for part in str(raw).split(','):
            part = part.strip()
            if not part:
                continue
            try:
                ids.append(int(part))
            except ValueError:
                raise ValidationError({key: f'Invalid id: {part}'})
    return ids


def parse_date(value, field_name='date'):
    """Parse YYYY-MM-DD (or an ISO datetime) into a date; None passes through"""
    if value in (None, ''):
        return None
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError({field_name: 'Date must be in YYYY-MM-DD format'})


def apply_soft_delete_filter(model, params):
    """
    Pick the base queryset for list endpoints.

    isDeleted=true returns only soft-deleted rows, withDeleted=true returns
    everything, otherwise only live rows.
    """
    if parse_bool(params.get('isDeleted')):
        return model.all_objects.filter(deleted_at__isnull=False)
    if parse_bool(params.get('withDeleted')):
        return model.all_objects.all()
    return model.objects.all()


def apply_ordering(queryset, params, allowed, default_field='created_at', default_order='DESC'):
    """Apply orderBy/order query params restricted to a whitelist of fields"""
    order_by = params.get('orderBy') or default_field
    if order_by not in allowed:
        raise ValidationError({'orderBy': f"Must be one of: {', '.join(sorted(allowed))}"})
    field = allowed[order_by] if isinstance(allowed, dict) else order_by
    direction = (params.get('order') or default_order).upper()
    if direction not in ('ASC', 'DESC'):
        raise ValidationError({'order': 'Must be ASC or DESC'})
    prefix = '-' if direction == 'DESC' else ''
    return queryset.order_by(f'{prefix}{field}', f'{prefix}id')


def paginate_queryset(queryset, request, serializer_class, message='Success', context=None, paginate_by_default=None):
    """
    Serialize a queryset into the shared list envelope:
    {message, data, total, page, limit, totalPages}

    When the client does not send isPagination, pagination switches on
    automatically once the result set is larger than the threshold.
    """
    params = request.query_params
    page = parse_int(params.get('page'), 1, minimum=1)
    limit = parse_int(params.get('limit'), settings.DEFAULT_PAGE_SIZE, minimum=1)
    total = queryset.count()

    paginate = parse_bool(params.get('isPagination'))
    if paginate is None:
        if paginate_by_default is not None:
            paginate = paginate_by_default
        else:
            paginate = total > settings.LIST_AUTO_PAGINATION_THRESHOLD

    if context is None:
        context = {'request': request}

    if paginate:
        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)
        rows = page_obj.object_list
        page = page_obj.number
        total_pages = paginator.num_pages
    else:
        rows = queryset
        page = 1
        limit = total
        total_pages = 1

    return {
        'message': message,
        'data': serializer_class(rows, many=True, context=context).data,
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': total_pages,
    }


def check_duplicate_by_field(model, field, value, exclude_id=None, with_deleted=False, case_insensitive=False):
    """Return True when another row already holds `value` in `field`"""
    if value is None:
        return False
    if with_deleted and hasattr(model, 'all_objects'):
        queryset = model.all_objects.all()
    else:
        queryset = model._default_manager.all()
    if case_insensitive and isinstance(value, str):
        queryset = queryset.filter(**{f'{field}__iexact': value.strip()})
    else:
        queryset = queryset.filter(**{field: value})
    if exclude_id:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.exists()


# Text helpers

def remove_accents(text):
    """Strip diacritics, e.g. 'Điện thoại' -> 'Dien thoai'"""
    text = text.replace('đ', 'd').replace('Đ', 'D')
    normalized = unicodedata.normalize('NFD', text)
    return ''.join(ch for ch in normalized if unicodedata.category(ch) != 'Mn')


def convert_to_slug(text):
    cleaned = remove_accents(text or '').lower()
    cleaned = ''.join(ch for ch in cleaned if ch.isalnum() or ch in ('_', ' '))
    return '-'.join(cleaned.split())


def capitalize(text):
    if not text:
        return ''
    return text[0].upper() + text[1:].lower()


def create_random_code(length):
    return secrets.token_hex(length)[:length]


def generate_random_password(length=None):
    length = length or settings.RANDOM_PASSWORD_LENGTH
    return ''.join(secrets.choice(PASSWORD_CHARS) for _ in range(length))


def generate_random_token():
    return str(uuid.uuid4())


# Array helpers (deep equality through a JSON key)

def _array_key(item):
    if isinstance(item, (dict, list)):
        return json.dumps(item, sort_keys=True, default=str)
    return str(item)


def unique_array(items):
    seen = set()
    result = []
    for item in items:
        key = _array_key(item)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def find_duplicates_in_array(items):
    seen = set()
    duplicates = set()
    result = []
    for item in items:
        key = _array_key(item)
        if key in seen:
            if key not in duplicates:
                duplicates.add(key)
                result.append(item)
        else:
            seen.add(key)
    return result


def find_unique_elements_in_array(items):
    counts = {}
    for item in items:
        key = _array_key(item)
        if key in counts:
            counts[key][0] += 1
        else:
            counts[key] = [1, item]
    return [item for count, item in counts.values() if count == 1]


# Date helpers

def start_of_day(value):
    """Aware datetime at 00:00:00 of the given date/datetime"""
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        value = value.date()
    return timezone.make_aware(datetime.combine(value, time.min))


def end_of_day(value):
    """Aware datetime at 23:59:59.999999 of the given date/datetime"""
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        value = value.date()
    return timezone.make_aware(datetime.combine(value, time.max))


def week_bounds(day):
    """Monday and Sunday of the week containing `day`"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_bounds(day):
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)


def shift_months(day, months):
    """Same day-of-month `months` away, clamped to the month's last day"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = month_bounds(day.replace(year=year, month=month, day=1))[1].day
    return day.replace(year=year, month=month, day=min(day.day, last_day))
