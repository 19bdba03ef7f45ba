import pytest
from django.test import Client


@pytest.mark.django_db
def test_healthz_reports_database():
    response = Client().get("/health/")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}
