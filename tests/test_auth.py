from conftest import ADMIN_SECRET, PASSWORD, auth_headers, registration_payload


def test_register_returns_user_and_token(client):
    payload = registration_payload(email="Alice@LendFi.io", walletAddress="0xabc")

    response = client.post("/api/auth/register", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    user = body["data"]["user"]
    assert user["email"] == "alice@lendfi.io"
    assert user["role"] == "user"
    assert user["kycStatus"] == "pending"
    assert user["isActive"] is True
    assert user["walletAddress"] == "0xabc"
    assert "passwordHash" not in user
    assert body["data"]["token"]


def test_register_rejects_duplicate_email_and_id_number(client):
    first = registration_payload()
    assert client.post("/api/auth/register", json=first).status_code == 201

    same_email = registration_payload(email=first["email"])
    response = client.post("/api/auth/register", json=same_email)
    assert response.status_code == 400
    assert response.json()["message"] == "User with this email already exists"

    same_id = registration_payload(idNumber=first["idNumber"])
    response = client.post("/api/auth/register", json=same_id)
    assert response.status_code == 400
    assert response.json()["message"] == "User with this ID number already exists"


def test_register_validates_password_strength(client):
    response = client.post("/api/auth/register", json=registration_payload(password="weakpass"))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    assert any("password" in error for error in body["errors"])


def test_register_rejects_future_date_of_birth(client):
    response = client.post("/api/auth/register", json=registration_payload(dateOfBirth="2999-01-01"))

    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"


def test_admin_registration_requires_matching_secret(client):
    missing = client.post("/api/auth/register", json=registration_payload(role="admin"))
    assert missing.status_code == 400

    wrong = client.post("/api/auth/register", json=registration_payload(role="admin", adminSecret="nope"))
    assert wrong.status_code == 403
    assert wrong.json()["message"] == "Invalid admin secret"

    ok = client.post("/api/auth/register", json=registration_payload(role="admin", adminSecret=ADMIN_SECRET))
    assert ok.status_code == 201
    assert ok.json()["data"]["user"]["role"] == "admin"


def test_login_success_and_failure(client, register):
    user = register()

    response = client.post("/api/auth/login", json={"email": user["email"].upper(), "password": PASSWORD})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == user["id"]
    assert data["user"]["lastLogin"] is not None

    response = client.post("/api/auth/login", json={"email": user["email"], "password": "Wr0ng!Pass"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"

    response = client.post("/api/auth/login", json={"email": "ghost@lendfi.io", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_profile_requires_valid_token(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Access token required"}

    response = client.get("/api/auth/profile", headers=auth_headers("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_update_profile(client, register):
    user = register()

    response = client.put(
        "/api/auth/profile",
        json={"name": "Renamed User", "walletAddress": "0xfeed"},
        headers=user["headers"],
    )
    assert response.status_code == 200
    updated = response.json()["data"]["user"]
    assert updated["name"] == "Renamed User"
    assert updated["walletAddress"] == "0xfeed"

    profile = client.get("/api/auth/profile", headers=user["headers"]).json()["data"]["user"]
    assert profile["name"] == "Renamed User"


def test_update_profile_rejects_taken_wallet_address(client, register):
    register(walletAddress="0xtaken")
    other = register()

    response = client.put("/api/auth/profile", json={"walletAddress": "0xtaken"}, headers=other["headers"])

    assert response.status_code == 400
    assert response.json()["message"] == "Wallet address already in use"


def test_change_password(client, register):
    user = register()

    response = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "Wr0ng!Pass", "newPassword": "N3w!Password"},
        headers=user["headers"],
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Current password is incorrect"

    response = client.put(
        "/api/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "N3w!Password"},
        headers=user["headers"],
    )
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
    new = client.post("/api/auth/login", json={"email": user["email"], "password": "N3w!Password"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_deactivated_account_is_locked_out(client, register, admin):
    user = register()

    response = client.put(f"/api/admin/users/{user['id']}/deactivate", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["data"]["user"]["isActive"] is False

    response = client.get("/api/auth/profile", headers=user["headers"])
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"

    response = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"
