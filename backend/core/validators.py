"""
Serializer-level validators for cross-field rules.

They are attached through ``Meta.validators`` (or called from
``validate``) and receive the validated attrs dict. Missing values pass,
so partial updates are not rejected for fields the client did not send.

Example:
    class Meta:
        validators = [
            Comparison('valid_to', 'valid_from', 'gt'),
            Comparison('age', 18, 'gte'),
            Comparison('role', ['ADMINISTRATOR', 'EMPLOYEE'], 'in'),
            IsBetweenRange('due_date', 'start_date', 30, unit='day'),
        ]
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from rest_framework import serializers

OPERATORS = ('eq', 'gt', 'gte', 'lt', 'lte', 'ne', 'in', 'nin')
UNITS = ('day', 'week', 'month', 'year')
NUMBER_TYPES = (int, float, Decimal)


def compare(value, related, operator):
    """
    Compare two values with one of the supported operators.

    Lists support only in/nin, strings only eq/ne; dates and numbers
    support every ordering operator. Any other pairing raises TypeError.
    """
    if operator not in OPERATORS:
        raise ValueError(f'Invalid operator: {operator}')

    if isinstance(related, (list, tuple, set)):
        if operator == 'in':
            return value in related
        if operator == 'nin':
            return value not in related
        raise ValueError(f'Invalid operator for a list: {operator}')

    if isinstance(value, str) and isinstance(related, str):
        if operator == 'eq':
            return value == related
        if operator == 'ne':
            return value != related
        raise ValueError(f'Invalid operator for strings: {operator}')

    both_dates = isinstance(value, (date, datetime)) and isinstance(related, (date, datetime))
    both_numbers = (
        isinstance(value, NUMBER_TYPES) and isinstance(related, NUMBER_TYPES)
        and not isinstance(value, bool) and not isinstance(related, bool)
    )
    if not (both_dates or both_numbers):
        raise TypeError(f'Unsupported comparison between {type(value).__name__} and {type(related).__name__}')

    if operator == 'eq':
        return value == related
    if operator == 'gt':
        return value > related
    if operator == 'gte':
        return value >= related
    if operator == 'lt':
        return value < related
    if operator == 'lte':
        return value <= related
    if operator == 'ne':
        return value != related
    raise ValueError(f'Invalid operator for this type: {operator}')


def add_offset(base, offset, unit):
    """Shift a date/datetime by a signed number of days, weeks, months or years"""
    if unit not in UNITS:
        raise ValueError(f'Invalid unit: {unit}')
    if unit == 'day':
        return base + timedelta(days=offset)
    if unit == 'week':
        return base + timedelta(weeks=offset)
    months = offset * 12 if unit == 'year' else offset
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = base.day
    while True:
        try:
            return base.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


class Comparison:
    """
    Compare `field` against a constant or another field of the payload.

    A string reference is treated as a field name; use a list for in/nin.
    """

    def __init__(self, field, value_or_field, operator, message=None):
        self.field = field
        self.value_or_field = value_or_field
        self.operator = operator
        self.message = message

    def __call__(self, attrs):
        value = attrs.get(self.field)
        if isinstance(self.value_or_field, str):
            related = attrs.get(self.value_or_field)
            target = f'field {self.value_or_field}'
        else:
            related = self.value_or_field
            target = 'value'
        if value is None or related is None:
            return
        try:
            passed = compare(value, related, self.operator)
        except (TypeError, ValueError) as e:
            raise serializers.ValidationError({self.field: str(e)})
        if not passed:
            message = self.message or f'{self.field} must satisfy the "{self.operator}" condition with {target}.'
            raise serializers.ValidationError({self.field: message})


class IsBetweenRange:
    """
    Require `field` to fall inside an inclusive date range.

    The range is either [field_a, field_b] (ordered automatically) or
    field_a shifted by a signed offset in days, weeks, months or years.
    """

    def __init__(self, field, field_a, field_b_or_offset, unit=None, message=None):
        self.field = field
        self.field_a = field_a
        self.field_b_or_offset = field_b_or_offset
        self.unit = unit
        self.message = message

    def __call__(self, attrs):
        value = attrs.get(self.field)
        base = attrs.get(self.field_a)
        if not value or not base:
            return

        if isinstance(self.field_b_or_offset, int) and self.unit:
            shifted = add_offset(base, self.field_b_or_offset, self.unit)
            start, end = (base, shifted) if self.field_b_or_offset >= 0 else (shifted, base)
            target = f'{self.field_a} and {self.field_a} + {self.field_b_or_offset} {self.unit}'
        elif isinstance(self.field_b_or_offset, str):
            other = attrs.get(self.field_b_or_offset)
            if not other:
                return
            start, end = (base, other) if base <= other else (other, base)
            target = f'{self.field_a} and {self.field_b_or_offset}'
        else:
            raise serializers.ValidationError({self.field: 'Invalid range definition'})

        if not start <= value <= end:
            raise serializers.ValidationError({self.field: self.message or f'{self.field} must be between {target}'})


class UniqueFieldInArray:
    """Field validator: a list of dicts must not repeat the value of `key`"""

    def __init__(self, key, message=None):
        self.key = key
        self.message = message

    def __call__(self, value):
        if not isinstance(value, (list, tuple)):
            raise serializers.ValidationError('Expected a list of items.')
        keys = [item.get(self.key) if isinstance(item, dict) else None for item in value]
        if len(keys) != len(set(keys)):
            raise serializers.ValidationError(
                self.message or f'The array contains duplicate {self.key} values. Each {self.key} must be unique.'
            )
