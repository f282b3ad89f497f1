import os
from pathlib import Path
import tempfile

# Isolated lightweight DB and no seeding; must run before the app is imported.
DB_PATH = Path(tempfile.gettempdir()) / "vendor_crm_test.db"
if DB_PATH.exists():
    DB_PATH.unlink()

os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{DB_PATH}")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("AUTO_SEED_ADMIN_USER", "false")
os.environ.setdefault("AUTO_SEED_DEMO_VENDOR", "false")
os.environ.setdefault("CRM_AUTH_DISABLED", "true")
os.environ.setdefault("CRM_JWT_SECRET", "test-jwt-secret-strong-value-123456")
os.environ.setdefault("CRM_PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("AUTO_APPROVAL_TIMEZONE", "UTC")

from datetime import datetime, timedelta  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from vendor_crm.core.db import SessionLocal  # noqa: E402
from vendor_crm.core.rate_limit import _limiter  # noqa: E402
from vendor_crm.main import create_app  # noqa: E402
from vendor_crm.models.client_profile import ClientProfile  # noqa: E402
from vendor_crm.models.subscription import Subscription  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    _limiter.reset()
    yield
    _limiter.reset()


@pytest.fixture
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _create_tenant(
    plan: Optional[str] = "STANDARD",
    status: str = "ACTIVE",
    *,
    user_id: Optional[str] = None,
    timezone: Optional[str] = None,
    business_name: str = "Test Deliveries",
) -> str:
    """Insert a client profile, plus a subscription unless ``plan`` is None."""
    with SessionLocal() as db:
        profile = ClientProfile(business_name=business_name, user_id=user_id, timezone=timezone)
        db.add(profile)
        db.flush()
        if plan is not None:
            db.add(
                Subscription(
                    client_profile_id=profile.id,
                    plan=plan,
                    status=status,
                    start_date=datetime.utcnow() - timedelta(days=1),
                    end_date=datetime.utcnow() + timedelta(days=30),
                )
            )
        db.commit()
        return profile.id


@pytest.fixture
def make_tenant(client):
    # Requests the client first so startup has created the tables.
    return _create_tenant
