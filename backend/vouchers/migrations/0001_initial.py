# Generated manually for the initial storefront schema

from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Voucher',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('code', models.CharField(max_length=100)),
                ('value_discount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('discount_type', models.CharField(choices=[('PERCENTAGE', 'Percentage'), ('AMOUNT', 'Amount'), ('NO_DISCOUNT', 'No Discount')], default='PERCENTAGE', max_length=20)),
                ('description', models.TextField(blank=True)),
                ('target_receiver_group', models.CharField(choices=[('ALL', 'All'), ('CUSTOMERS', 'Customers'), ('VIP', 'VIP Customers'), ('EMPLOYEES', 'Employees')], default='ALL', max_length=20)),
                ('target_type', models.PositiveSmallIntegerField(choices=[(0, 'All products'), (1, 'Brands'), (2, 'Categories'), (3, 'Products')], default=0)),
                ('min_order_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('max_discount_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('usage_limit', models.PositiveIntegerField(default=1)),
                ('used_count', models.PositiveIntegerField(default=0)),
                ('per_user_limit', models.PositiveIntegerField(default=1)),
                ('is_active', models.BooleanField(default=True)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('EXPIRED', 'Expired'), ('DISABLED', 'Disabled'), ('UPCOMING', 'Upcoming')], db_index=True, default='ACTIVE', max_length=20)),
                ('valid_from', models.DateTimeField()),
                ('valid_to', models.DateTimeField()),
                ('is_public', models.BooleanField(default=True)),
                ('brands', models.ManyToManyField(blank=True, db_table='voucher_brands', related_name='vouchers', to='catalog.brand')),
                ('categories', models.ManyToManyField(blank=True, db_table='voucher_categories', related_name='vouchers', to='catalog.category')),
                ('products', models.ManyToManyField(blank=True, db_table='voucher_products', related_name='vouchers', to='catalog.product')),
                ('creator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('editor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'vouchers',
            },
        ),
        migrations.CreateModel(
            name='VoucherRecipient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('used_count', models.PositiveIntegerField(default=0)),
                ('max_usages', models.PositiveIntegerField(blank=True, null=True)),
                ('received_at', models.DateTimeField(auto_now_add=True)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('USED', 'Used'), ('EXPIRED', 'Expired'), ('REVOKED', 'Revoked')], default='ACTIVE', max_length=20)),
                ('first_used_at', models.DateTimeField(blank=True, null=True)),
                ('last_used_at', models.DateTimeField(blank=True, null=True)),
                ('total_discount_applied', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('usage_history', models.JSONField(blank=True, default=list)),
                ('source', models.CharField(choices=[('MANUAL', 'Manual'), ('CAMPAIGN', 'Campaign'), ('REWARD', 'Reward')], default='MANUAL', max_length=20)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='voucher_recipients', to=settings.AUTH_USER_MODEL)),
                ('voucher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='recipients', to='vouchers.voucher')),
            ],
            options={
                'db_table': 'voucher_recipients',
                'ordering': ['-received_at'],
                'unique_together': {('voucher', 'user')},
            },
        ),
        migrations.AddConstraint(
            model_name='voucher',
            constraint=models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True)), fields=('code',), name='uniq_voucher_code_alive'),
        ),
        migrations.AddIndex(
            model_name='voucher',
            index=models.Index(fields=['valid_from', 'valid_to'], name='vouchers_window_idx'),
        ),
    ]
