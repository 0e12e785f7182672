import uuid
from decimal import Decimal

import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('company_name', models.CharField(blank=True, max_length=100)),
                ('account_holder_name', models.CharField(blank=True, max_length=255)),
                ('bank_name', models.CharField(blank=True, max_length=100)),
                ('account_name', models.CharField(blank=True, max_length=255)),
                ('account_number', models.CharField(blank=True, max_length=50)),
                ('iban', models.CharField(blank=True, max_length=50)),
                ('bic', models.CharField(blank=True, max_length=20)),
                ('sort_code', models.CharField(blank=True, max_length=20)),
                ('swift_code', models.CharField(blank=True, max_length=20)),
                ('routing_number', models.CharField(blank=True, max_length=50)),
                ('bank_address', models.TextField(blank=True)),
                ('additional_info', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='EmailSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('app_password', models.CharField(blank=True, max_length=255)),
                ('smtp_host', models.CharField(blank=True, max_length=255)),
                ('smtp_port', models.PositiveIntegerField(blank=True, default=587, null=True)),
                ('delivery_method', models.CharField(choices=[('custom', 'Own SMTP account'), ('default', 'Platform default sender')], default='custom', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='email_settings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Email settings',
            },
        ),
        migrations.CreateModel(
            name='EmailTemplate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('subject', models.CharField(max_length=255)),
                ('content', models.TextField()),
                ('is_default', models.BooleanField(default=False)),
                ('template_type', models.CharField(default='custom', max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='email_templates', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='InvoiceTemplate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(max_length=100)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('template_html', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoice_templates', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('invoice_number', models.CharField(blank=True, db_index=True, max_length=50, null=True)),
                ('client', models.CharField(max_length=255)),
                ('client_email', models.EmailField(blank=True, max_length=254, null=True)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('work_type', models.CharField(max_length=255)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('sent', 'Sent'), ('pending', 'Pending'), ('paid', 'Paid'), ('overdue', 'Overdue'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('converted', 'Converted')], db_index=True, default='draft', max_length=20)),
                ('is_recurring', models.BooleanField(default=False)),
                ('recurring_frequency', models.CharField(blank=True, choices=[('every-20-seconds', 'Every 20 seconds (testing)'), ('every-minute', 'Every minute (testing)'), ('daily', 'Daily'), ('weekly', 'Weekly'), ('bi-weekly', 'Every 2 Weeks'), ('monthly', 'Monthly'), ('monthly-test', 'Monthly (2-minute testing)'), ('quarterly', 'Quarterly'), ('yearly', 'Yearly')], max_length=20, null=True)),
                ('recurring_start_date', models.DateTimeField(blank=True, null=True)),
                ('recurring_end_date', models.DateTimeField(blank=True, null=True)),
                ('next_recurring_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('recurring_count', models.PositiveIntegerField(default=0, help_text='Number of invoices generated so far')),
                ('max_recurrences', models.PositiveIntegerField(blank=True, help_text='Maximum number of invoices to generate (blank = unlimited)', null=True)),
                ('auto_send_email', models.BooleanField(default=True)),
                ('day_of_month', models.PositiveSmallIntegerField(blank=True, help_text='Day of month (1-31); shorter months use their last day', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(31)])),
                ('day_of_week', models.PositiveSmallIntegerField(blank=True, help_text='Day of week (0=Sunday ... 6=Saturday)', null=True, validators=[django.core.validators.MaxValueValidator(6)])),
                ('month_of_year', models.PositiveSmallIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('quarter_month', models.PositiveSmallIntegerField(blank=True, help_text='Month within the quarter (1-3)', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(3)])),
                ('recurring_time', models.CharField(blank=True, help_text='Time of day (HH:MM, 24-hour) to generate invoices', max_length=5, null=True, validators=[django.core.validators.RegexValidator(message='Use 24-hour HH:MM format, e.g. 09:00 or 14:30.', regex='^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')])),
                ('is_first_recurring_invoice', models.BooleanField(default=False)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('pdf_template_sent', models.BooleanField(default=False)),
                ('sent_template_html', models.TextField(blank=True, null=True)),
                ('custom_fields', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('item_structure', models.CharField(choices=[('hourly', 'Hourly (rate x hours)'), ('fixed_price', 'Fixed price (quantity x unit price)'), ('daily_rate', 'Daily rate (rate x days)'), ('simple', 'Simple amount')], default='hourly', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('email_template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='invoices.emailtemplate')),
                ('invoice_template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='invoices.invoicetemplate')),
                ('parent_invoice', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='child_invoices', to='invoices.invoice')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoices', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_recurring', 'next_recurring_date'], name='invoice_recurring_due_idx'),
                    models.Index(fields=['user', 'status'], name='invoice_user_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('description', models.CharField(max_length=500)),
                ('hours', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('rate', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('quantity', models.DecimalField(blank=True, decimal_places=4, max_digits=15, null=True)),
                ('unit_price', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('days', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('total', models.DecimalField(decimal_places=2, max_digits=15)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='invoices.invoice')),
            ],
            options={
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Activity',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('activity_type', models.CharField(choices=[('invoice_created', 'Invoice Created'), ('invoice_deleted', 'Invoice Deleted'), ('recurring_started', 'Recurring Started'), ('recurring_updated', 'Recurring Settings Updated'), ('recurring_stopped', 'Recurring Stopped'), ('recurring_auto_generated', 'Recurring Invoice Generated'), ('recurring_email_sent', 'Recurring Email Sent'), ('recurring_failed', 'Recurring Delivery Failed')], db_index=True, max_length=50)),
                ('text', models.TextField()),
                ('invoice_id', models.UUIDField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Activities',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='activity_user_created_idx'),
                ],
            },
        ),
    ]
