"""Integration tests for /email-verification and /phone-verification."""


def _sent_email_token(email_provider) -> str:
    return email_provider.send_verification_email.await_args.args[2]


def _sent_sms_code(sms_provider) -> str:
    return sms_provider.send_otp.await_args.args[1]


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestEmailVerification:
    def test_send_requires_auth(self, client):
        assert client.post("/email-verification/send").status_code == 401

    def test_send_then_verify(self, client, users, user, auth_headers, email_provider):
        resp = client.post("/email-verification/send", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        token = _sent_email_token(email_provider)
        resp = client.post("/email-verification/verify", json={"token": token})
        assert resp.status_code == 200
        assert resp.json()["email_verified"] is True
        assert users.users[user.id].email_verified is True
        email_provider.send_welcome_email.assert_awaited_once()

    def test_link_works_once(self, client, auth_headers, email_provider):
        client.post("/email-verification/send", headers=auth_headers)
        token = _sent_email_token(email_provider)
        client.post("/email-verification/verify", json={"token": token})
        resp = client.post("/email-verification/verify", json={"token": token})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid or expired code"

    def test_malformed_token_rejected_before_lookup(self, client):
        resp = client.post("/email-verification/verify", json={"token": "not-a-token"})
        assert resp.status_code == 422

    def test_new_link_replaces_old(self, client, auth_headers, email_provider):
        client.post("/email-verification/send", headers=auth_headers)
        first = _sent_email_token(email_provider)
        client.post("/email-verification/send", headers=auth_headers)
        resp = client.post("/email-verification/verify", json={"token": first})
        assert resp.status_code == 400

    def test_already_verified(self, client, users, user, auth_headers):
        users.users[user.id] = user.model_copy(update={"email_verified": True})
        resp = client.post("/email-verification/send", headers=auth_headers)
        assert resp.status_code == 409

    def test_delivery_failure(self, client, auth_headers, email_provider):
        email_provider.send_verification_email.return_value = False
        resp = client.post("/email-verification/send", headers=auth_headers)
        assert resp.status_code == 502
        assert resp.json()["code"] == "delivery_failed"

    def test_status(self, client, auth_headers):
        client.post("/email-verification/send", headers=auth_headers)
        resp = client.get("/email-verification/status", headers=auth_headers)
        assert resp.json() == {
            "email": "lan@example.com",
            "email_verified": False,
            "pending": True,
        }


class TestPhoneVerification:
    def test_send_and_verify(self, client, users, user, auth_headers, sms_provider):
        resp = client.post(
            "/phone-verification/send", json={"phone": "+84912345678"}, headers=auth_headers
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["sms_sent"] is True
        assert "12345678" not in body["phone"]
        assert sms_provider.send_otp.await_args.args[0] == "0912345678"

        code = _sent_sms_code(sms_provider)
        resp = client.post(
            "/phone-verification/verify", json={"otp": code}, headers=auth_headers
        )
        assert resp.status_code == 200
        assert resp.json()["phone_verified"] is True
        assert users.users[user.id].phone == "0912345678"

    def test_invalid_number(self, client, auth_headers):
        resp = client.post(
            "/phone-verification/send", json={"phone": "12345"}, headers=auth_headers
        )
        assert resp.status_code == 400

    def test_malformed_code_rejected_before_lookup(self, client, auth_headers):
        resp = client.post(
            "/phone-verification/verify", json={"otp": "12ab"}, headers=auth_headers
        )
        assert resp.status_code == 422

    def test_wrong_codes_count_down_then_lock(self, client, auth_headers, sms_provider):
        client.post(
            "/phone-verification/send", json={"phone": "0912345678"}, headers=auth_headers
        )
        code = _sent_sms_code(sms_provider)
        wrong = _wrong(code)

        for expected in (4, 3, 2, 1, 0):
            resp = client.post(
                "/phone-verification/verify", json={"otp": wrong}, headers=auth_headers
            )
            assert resp.status_code == 400
            assert resp.json()["details"] == {"remaining_attempts": expected}

        resp = client.post(
            "/phone-verification/verify", json={"otp": code}, headers=auth_headers
        )
        assert resp.status_code == 429
        assert resp.json()["code"] == "attempts_exhausted"

    def test_expired_code(self, client, clock, auth_headers, sms_provider):
        client.post(
            "/phone-verification/send", json={"phone": "0912345678"}, headers=auth_headers
        )
        code = _sent_sms_code(sms_provider)
        clock.advance(minutes=11)
        resp = client.post(
            "/phone-verification/verify", json={"otp": code}, headers=auth_headers
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "expired_code"

    def test_fourth_code_within_an_hour_is_rate_limited(
        self, client, clock, codec, user, auth_headers, sms_provider
    ):
        for _ in range(3):
            resp = client.post(
                "/phone-verification/send",
                json={"phone": "0912345678"},
                headers=auth_headers,
            )
            assert resp.status_code == 200

        resp = client.post(
            "/phone-verification/send", json={"phone": "0912345678"}, headers=auth_headers
        )
        assert resp.status_code == 429
        assert resp.json()["code"] == "rate_limit_exceeded"
        assert sms_provider.send_otp.await_count == 3

        clock.advance(minutes=61)
        token, _ = codec.mint(user.id, user.role)
        resp = client.post(
            "/phone-verification/send",
            json={"phone": "0912345678"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert resp.status_code == 200

    def test_number_held_by_another_account(self, client, users, auth_headers):
        users.add(
            email="other@example.com", name="Other",
            phone="0912345678", phone_verified=True,
        )
        resp = client.post(
            "/phone-verification/send", json={"phone": "0912345678"}, headers=auth_headers
        )
        assert resp.status_code == 409

    def test_status_masks_number(self, client, users, user, auth_headers):
        users.users[user.id] = user.model_copy(
            update={"phone": "0912345678", "phone_verified": True}
        )
        resp = client.get("/phone-verification/status", headers=auth_headers)
        body = resp.json()
        assert body["phone_verified"] is True
        assert body["phone"] != "0912345678"
        assert body["phone"].endswith("678")


def test_error_shape_is_documented(app):
    responses = app.openapi()["paths"]["/phone-verification/send"]["post"]["responses"]
    schema = responses["429"]["content"]["application/json"]["schema"]
    assert schema["$ref"].endswith("/ErrorResponse")
