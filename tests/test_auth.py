import unittest
from datetime import timedelta

from storefront.models.user import User
from storefront.services.auth import create_access_token, decode_access_token
from storefront.errors import AuthError
from tests.support import StorefrontTestCase

SIGNUP = {
    "first_name": "Jose",
    "last_name": "Reyes",
    "address": "45 Mabini Ave",
    "mobile": "09181234567",
    "email": "Jose.Reyes@example.com",
    "password": "s3cret-pass",
}


class AuthTestCase(StorefrontTestCase):
    def signup(self, **overrides):
        return self.client.post("/api/v1/auth/signup", json={**SIGNUP, **overrides})

    def signin(self, email="jose.reyes@example.com", password="s3cret-pass"):
        return self.client.post("/api/v1/auth/signin", json={"email": email, "password": password})

    # ---------- Registration ----------

    def test_signup_returns_token_for_new_account(self):
        resp = self.signup()
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["first_name"], "Jose")
        self.assertEqual(body["token_type"], "bearer")

        user_id = decode_access_token(body["token"])
        with self.session() as db:
            user = db.get(User, user_id)
            self.assertEqual(user.email, "jose.reyes@example.com")
            self.assertNotEqual(user.hashed_password, SIGNUP["password"])

    def test_duplicate_email_is_rejected_case_insensitively(self):
        self.assertEqual(self.signup().status_code, 200)

        resp = self.signup(email="JOSE.REYES@example.com")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Email is already in use")
        self.assertEqual(self.count(User), 1)

    def test_signup_validates_fields(self):
        self.assertEqual(self.signup(email="not-an-email").status_code, 422)
        self.assertEqual(self.signup(password="123").status_code, 422)
        self.assertEqual(self.count(User), 0)

    # ---------- Sign-in ----------

    def test_signin_sets_cookie_and_records_login(self):
        self.signup()

        resp = self.signin(email="JOSE.REYES@example.com")
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["first_name"], "Jose")
        self.assertIn("authToken", resp.cookies)
        set_cookie = resp.headers["set-cookie"].lower()
        self.assertIn("httponly", set_cookie)
        self.assertIn("samesite=strict", set_cookie)

        with self.session() as db:
            user = db.query(User).one()
            self.assertIsNotNone(user.last_login)
            self.assertIsNone(user.logout_time)

    def test_bad_credentials_are_indistinguishable(self):
        self.signup()

        wrong_password = self.signin(password="wrong-pass")
        unknown_email = self.signin(email="nobody@example.com")
        for resp in (wrong_password, unknown_email):
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.json()["detail"], "Invalid email or password")

    # ---------- Session ----------

    def test_check_never_fails(self):
        user_id = self.add_user()

        self.assertEqual(self.client.get("/api/v1/auth/check").json(), {"is_authenticated": False, "user": None})
        resp = self.client.get("/api/v1/auth/check", headers={"Authorization": "Bearer garbage"})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["is_authenticated"])

        resp = self.client.get("/api/v1/auth/check", headers=self.auth(user_id))
        self.assertEqual(resp.json(), {"is_authenticated": True, "user": {"id": user_id}})

    def test_user_profile(self):
        user_id = self.add_user(email="maria@example.com")

        resp = self.client.get("/api/v1/auth/user", headers=self.auth(user_id))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True, "first_name": "Maria", "email": "maria@example.com"})

        self.assertEqual(self.client.get("/api/v1/auth/user", headers=self.auth(4242)).status_code, 404)
        self.assertEqual(self.client.get("/api/v1/auth/user").status_code, 401)

    def test_logout_records_time_and_clears_cookie(self):
        user_id = self.add_user()

        resp = self.client.post("/api/v1/auth/logout", headers=self.auth(user_id))
        self.assertEqual(resp.status_code, 200)
        self.assertIn("authToken=", resp.headers["set-cookie"])
        with self.session() as db:
            self.assertIsNotNone(db.get(User, user_id).logout_time)

    # ---------- Tokens ----------

    def test_expired_token_is_rejected(self):
        user_id = self.add_user()
        token = create_access_token({"user_id": user_id}, expires_delta=timedelta(seconds=-1))

        with self.assertRaises(AuthError) as ctx:
            decode_access_token(token)
        self.assertEqual(ctx.exception.message, "Token expired")

        resp = self.client.get("/api/v1/orders", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Token expired")

    def test_token_without_user_id_is_invalid(self):
        token = create_access_token({"sub": "someone"})
        with self.assertRaises(AuthError) as ctx:
            decode_access_token(token)
        self.assertEqual(ctx.exception.message, "Invalid token")


if __name__ == "__main__":
    unittest.main()
