from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone

RECURRING_TIME_VALIDATOR = RegexValidator(
    regex=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$",
    message="Use 24-hour HH:MM format, e.g. 09:00 or 14:30.",
)


class UserProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")

    company_name = models.CharField(max_length=100, blank=True)

    # Bank details, rendered into invoice emails and PDF layouts
    account_holder_name = models.CharField(max_length=255, blank=True)
    bank_name = models.CharField(max_length=100, blank=True)
    account_name = models.CharField(max_length=255, blank=True)
    account_number = models.CharField(max_length=50, blank=True)
    iban = models.CharField(max_length=50, blank=True)
    bic = models.CharField(max_length=20, blank=True)
    sort_code = models.CharField(max_length=20, blank=True)
    swift_code = models.CharField(max_length=20, blank=True)
    routing_number = models.CharField(max_length=50, blank=True)
    bank_address = models.TextField(blank=True)
    additional_info = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username}'s Profile"


class EmailSettings(models.Model):
    class DeliveryMethod(models.TextChoices):
        CUSTOM = "custom", "Own SMTP account"
        DEFAULT = "default", "Platform default sender"

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="email_settings")
    email = models.EmailField(blank=True)
    app_password = models.CharField(max_length=255, blank=True)
    smtp_host = models.CharField(max_length=255, blank=True)
    smtp_port = models.PositiveIntegerField(null=True, blank=True, default=587)
    delivery_method = models.CharField(max_length=20, choices=DeliveryMethod.choices, default=DeliveryMethod.CUSTOM)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Email settings"

    def __str__(self):
        return f"Email settings for {self.user}"

    @property
    def has_custom_credentials(self):
        return bool(self.email and self.app_password)


class EmailTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="email_templates")
    name = models.CharField(max_length=255)
    subject = models.CharField(max_length=255)
    content = models.TextField()
    is_default = models.BooleanField(default=False)
    template_type = models.CharField(max_length=50, default="custom")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class InvoiceTemplate(models.Model):
    """A saved HTML layout used to render invoice PDFs."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="invoice_templates")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100)
    currency = models.CharField(max_length=3, default="USD")
    template_html = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"
        ACCEPTED = "accepted", "Accepted"
        DECLINED = "declined", "Declined"
        CONVERTED = "converted", "Converted"

    class Frequency(models.TextChoices):
        EVERY_20_SECONDS = "every-20-seconds", "Every 20 seconds (testing)"
        EVERY_MINUTE = "every-minute", "Every minute (testing)"
        DAILY = "daily", "Daily"
        WEEKLY = "weekly", "Weekly"
        BIWEEKLY = "bi-weekly", "Every 2 Weeks"
        MONTHLY = "monthly", "Monthly"
        MONTHLY_TEST = "monthly-test", "Monthly (2-minute testing)"
        QUARTERLY = "quarterly", "Quarterly"
        YEARLY = "yearly", "Yearly"

    class ItemStructure(models.TextChoices):
        HOURLY = "hourly", "Hourly (rate x hours)"
        FIXED_PRICE = "fixed_price", "Fixed price (quantity x unit price)"
        DAILY_RATE = "daily_rate", "Daily rate (rate x days)"
        SIMPLE = "simple", "Simple amount"

    CURRENCY_SYMBOLS = {
        "USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "CNY": "¥",
        "INR": "₹", "AUD": "A$", "CAD": "C$", "CHF": "Fr", "SEK": "kr",
        "NZD": "NZ$",
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="invoices")
    invoice_number = models.CharField(max_length=50, null=True, blank=True, db_index=True)
    client = models.CharField(max_length=255)
    client_email = models.EmailField(null=True, blank=True)
    date = models.DateTimeField(default=timezone.now)
    work_type = models.CharField(max_length=255)
    currency = models.CharField(max_length=3, default="USD")
    total_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)

    # Recurrence configuration (template rows only)
    is_recurring = models.BooleanField(default=False)
    recurring_frequency = models.CharField(max_length=20, choices=Frequency.choices, null=True, blank=True)
    recurring_start_date = models.DateTimeField(null=True, blank=True)
    recurring_end_date = models.DateTimeField(null=True, blank=True)
    next_recurring_date = models.DateTimeField(null=True, blank=True, db_index=True)
    recurring_count = models.PositiveIntegerField(default=0, help_text="Number of invoices generated so far")
    max_recurrences = models.PositiveIntegerField(null=True, blank=True, help_text="Maximum number of invoices to generate (blank = unlimited)")
    auto_send_email = models.BooleanField(default=True)
    email_template = models.ForeignKey(EmailTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    invoice_template = models.ForeignKey(InvoiceTemplate, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    day_of_month = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(31)],
        help_text="Day of month (1-31); shorter months use their last day",
    )
    day_of_week = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MaxValueValidator(6)],
        help_text="Day of week (0=Sunday ... 6=Saturday)",
    )
    month_of_year = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    quarter_month = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(3)],
        help_text="Month within the quarter (1-3)",
    )
    recurring_time = models.CharField(
        max_length=5, null=True, blank=True, validators=[RECURRING_TIME_VALIDATOR],
        help_text="Time of day (HH:MM, 24-hour) to generate invoices",
    )

    # Generated invoice provenance
    parent_invoice = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='child_invoices')
    is_first_recurring_invoice = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    pdf_template_sent = models.BooleanField(default=False)
    sent_template_html = models.TextField(null=True, blank=True)

    custom_fields = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    item_structure = models.CharField(max_length=20, choices=ItemStructure.choices, default=ItemStructure.HOURLY)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_recurring', 'next_recurring_date'], name='invoice_recurring_due_idx'),
            models.Index(fields=['user', 'status'], name='invoice_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.invoice_number or self.id} - {self.client}"

    @property
    def currency_symbol(self):
        return self.CURRENCY_SYMBOLS.get(self.currency, self.currency)

    @property
    def display_number(self):
        return self.invoice_number or str(self.id)

    @property
    def has_reached_max_recurrences(self):
        return bool(self.max_recurrences) and self.recurring_count >= self.max_recurrences


class LineItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=500)
    # Structure-specific inputs; which ones are set depends on Invoice.item_structure
    hours = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    rate = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    quantity = models.DecimalField(max_digits=15, decimal_places=4, null=True, blank=True)
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    days = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    total = models.DecimalField(max_digits=15, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    STRUCTURE_FIELDS = ("hours", "rate", "quantity", "unit_price", "days", "amount")

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.description} ({self.total})"


class Activity(models.Model):
    class Type(models.TextChoices):
        INVOICE_CREATED = "invoice_created", "Invoice Created"
        INVOICE_DELETED = "invoice_deleted", "Invoice Deleted"
        RECURRING_STARTED = "recurring_started", "Recurring Started"
        RECURRING_UPDATED = "recurring_updated", "Recurring Settings Updated"
        RECURRING_STOPPED = "recurring_stopped", "Recurring Stopped"
        RECURRING_AUTO_GENERATED = "recurring_auto_generated", "Recurring Invoice Generated"
        RECURRING_EMAIL_SENT = "recurring_email_sent", "Recurring Email Sent"
        RECURRING_FAILED = "recurring_failed", "Recurring Delivery Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="activities")
    activity_type = models.CharField(max_length=50, choices=Type.choices, db_index=True)
    text = models.TextField()
    # Plain id so audit entries outlive the invoice they describe
    invoice_id = models.UUIDField(null=True, blank=True)
    metadata = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = "Activities"
        indexes = [
            models.Index(fields=['user', 'created_at'], name='activity_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.activity_type}: {self.text}"
