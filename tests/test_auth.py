import uuid
from datetime import datetime, timedelta

from vendor_crm.core.db import SessionLocal
from vendor_crm.core.security import create_access_token, decode_access_token, hash_password, verify_password
from vendor_crm.models.subscription import Subscription

RULES_URL = "/api/v1/auto-approval/rules"


def _register(client, username: str, password: str = "vendor-pass", **extra) -> dict:
    body = {"username": username, "password": password}
    body.update(extra)
    resp = client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _subscribe(client_profile_id: str, plan: str = "STANDARD") -> None:
    with SessionLocal() as db:
        db.add(
            Subscription(
                client_profile_id=client_profile_id,
                plan=plan,
                status="ACTIVE",
                start_date=datetime.utcnow(),
                end_date=datetime.utcnow() + timedelta(days=30),
            )
        )
        db.commit()


def _unique(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def test_password_hash_roundtrip():
    encoded = hash_password("s3cret")
    assert encoded.startswith("pbkdf2_sha256$")
    assert verify_password("s3cret", encoded)
    assert not verify_password("wrong", encoded)
    assert not verify_password("s3cret", "garbage")


def test_access_token_claims():
    token = create_access_token(sub="alice", role="VENDOR", user_id="u-1")
    claims = decode_access_token(token)
    assert claims["sub"] == "alice"
    assert claims["role"] == "VENDOR"
    assert claims["user_id"] == "u-1"


def test_bearer_token_scopes_rules_to_owned_profile(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    alice = _register(client, _unique("alice"), businessName="Alice Deliveries")
    bob = _register(client, _unique("bob"), businessName="Bob Deliveries")
    _subscribe(alice["user"]["clientProfileId"])
    _subscribe(bob["user"]["clientProfileId"])
    alice_auth = {"Authorization": f"Bearer {alice['access_token']}"}
    bob_auth = {"Authorization": f"Bearer {bob['access_token']}"}

    resp = client.post(
        RULES_URL,
        json={"name": "VIP", "ruleType": "CUSTOMER", "customerPhones": ["+15550001"]},
        headers=alice_auth,
    )
    assert resp.status_code == 201, resp.text
    rule = resp.json()
    assert rule["clientProfileId"] == alice["user"]["clientProfileId"]

    assert client.get(f"{RULES_URL}/{rule['id']}", headers=bob_auth).status_code == 404
    assert client.get(RULES_URL, headers=bob_auth).json()["rules"] == []
    # The dev header cannot be used to reach another tenant once auth is on.
    spoofed = client.get(
        RULES_URL,
        headers={**bob_auth, "X-Client-Profile": alice["user"]["clientProfileId"]},
    ).json()
    assert spoofed["rules"] == []


def test_login_returns_token_and_profile(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    username = _unique("carol")
    registered = _register(client, username, password="carol-pass", businessName="Carol Co")

    resp = client.post("/api/v1/auth/login", json={"username": username.upper(), "password": "carol-pass"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["clientProfileId"] == registered["user"]["clientProfileId"]

    bad = client.post("/api/v1/auth/login", json={"username": username, "password": "nope"})
    assert bad.status_code == 401


def test_missing_or_invalid_token_is_rejected(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    assert client.get(RULES_URL).status_code == 401
    resp = client.get(RULES_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_user_without_profile_is_forbidden(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    user = _register(client, _unique("dave"))
    assert user["user"]["clientProfileId"] is None
    resp = client.get(RULES_URL, headers={"Authorization": f"Bearer {user['access_token']}"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Client profile not found"


def test_register_rules(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    username = _unique("erin")
    _register(client, username)

    dup = client.post("/api/v1/auth/register", json={"username": username.upper(), "password": "another"})
    assert dup.status_code == 409

    spaced = client.post("/api/v1/auth/register", json={"username": "has space", "password": "secret1"})
    assert spaced.status_code == 400

    admin = client.post(
        "/api/v1/auth/register",
        json={"username": _unique("mallory"), "password": "secret1", "role": "ADMIN"},
    )
    assert admin.status_code == 403


def test_login_records_time_and_upgrades_hash(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    username = _unique("frank")
    registered = _register(client, username, password="frank-pass")

    monkeypatch.setenv("CRM_PASSWORD_HASH_ROUNDS", "2000")
    resp = client.post("/api/v1/auth/login", json={"username": username, "password": "frank-pass"})
    assert resp.status_code == 200, resp.text

    from vendor_crm.models.app_user import AppUser

    with SessionLocal() as db:
        user = db.get(AppUser, registered["user"]["id"])
        assert user.last_login_at is not None
        assert user.password_hash.split("$")[1] == "2000"
        assert verify_password("frank-pass", user.password_hash)


def test_me_reports_profile_and_plan(client, monkeypatch):
    monkeypatch.setenv("CRM_AUTH_DISABLED", "false")
    vendor = _register(client, _unique("grace"), businessName="Grace Goods")
    _subscribe(vendor["user"]["clientProfileId"], plan="PREMIUM")

    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {vendor['access_token']}"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["user"]["id"] == vendor["user"]["id"]
    assert body["clientProfile"]["businessName"] == "Grace Goods"
    assert body["subscription"]["plan"] == "PREMIUM"
    assert body["subscription"]["autoApprovalRuleLimit"] is None

    loner = _register(client, _unique("heidi"))
    body = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {loner['access_token']}"}).json()
    assert body["clientProfile"] is None
    assert body["subscription"] is None
