from datetime import datetime, timezone
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model

from invoices.models import (
    EmailSettings, EmailTemplate, Invoice, InvoiceTemplate, LineItem, UserProfile
)


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()
        django_get_or_create = ("username",)

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = "Ada"
    last_name = "Owner"
    password = factory.PostGenerationMethodCall("set_password", "testpass123")


class UserProfileFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = UserProfile

    user = factory.SubFactory(UserFactory)
    company_name = "Acme Studio"
    bank_name = "First Bank"
    account_number = "12345678"
    iban = "GB00TEST12345678"


class EmailSettingsFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EmailSettings

    user = factory.SubFactory(UserFactory)
    email = factory.LazyAttribute(lambda o: o.user.email)
    app_password = "app-password"
    smtp_host = "smtp.example.com"
    smtp_port = 587
    delivery_method = EmailSettings.DeliveryMethod.CUSTOM


class EmailTemplateFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EmailTemplate

    user = factory.SubFactory(UserFactory)
    name = "Monthly invoice"
    subject = "Invoice {{ invoice_number }} for {{ client_name }}"
    content = "Hello {{ clientName }}, your total is {{ total_amount }}. Pay to {{ bank_name }}."


class InvoiceTemplateFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InvoiceTemplate

    user = factory.SubFactory(UserFactory)
    title = "Simple layout"
    category = "simple"
    template_html = (
        "<html><body><h1>{{ company_name }}</h1><p>{{ invoice_number }}</p>"
        "{% for task in tasks %}<p>{{ task.description }}: {{ task.total }}</p>{% endfor %}"
        "<p>Total {{ total_amount }}</p></body></html>"
    )


class InvoiceFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Invoice

    user = factory.SubFactory(UserFactory)
    client = factory.Sequence(lambda n: f"Client {n}")
    client_email = "billing@client.example.com"
    work_type = "Consulting"
    currency = "USD"
    total_amount = Decimal("100.00")
    status = Invoice.Status.DRAFT


class RecurringInvoiceFactory(InvoiceFactory):
    is_recurring = True
    recurring_frequency = Invoice.Frequency.MONTHLY
    recurring_start_date = datetime(2024, 1, 15, tzinfo=timezone.utc)
    next_recurring_date = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
    recurring_count = 0
    auto_send_email = False


class LineItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = LineItem

    invoice = factory.SubFactory(InvoiceFactory)
    description = factory.Sequence(lambda n: f"Task {n}")
    hours = Decimal("5.00")
    rate = Decimal("10.00")
    total = Decimal("50.00")
