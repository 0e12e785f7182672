from datetime import datetime, timezone

import pytest

from tests.factories import EmailSettingsFactory, UserFactory


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def email_settings(user):
    return EmailSettingsFactory(user=user)


@pytest.fixture
def now():
    return datetime(2024, 1, 16, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def no_default_sender(settings):
    settings.RECURRING_DEFAULT_SENDER = {
        "email": None,
        "password": None,
        "from_address": None,
        "host": None,
        "port": None,
        "service": None,
        "secure": False,
    }
    settings.INVOICE_NUMBER_PREFIX = "INV"
    settings.INVOICE_NUMBER_PADDING = 4


@pytest.fixture
def default_sender(settings):
    settings.RECURRING_DEFAULT_SENDER = {
        "email": "noreply@invoicecycle.test",
        "password": "platform-secret",
        "from_address": "InvoiceCycle <noreply@invoicecycle.test>",
        "host": "smtp.invoicecycle.test",
        "port": "2525",
        "service": None,
        "secure": False,
    }
    return settings.RECURRING_DEFAULT_SENDER
