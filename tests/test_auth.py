import unittest

from supabase import AuthApiError

from fakes import FakeSupabase
from marketplace.schemas.auth import SignUpRequest
from marketplace.services.auth import sign_in, sign_out, sign_up
from marketplace.services.errors import AuthenticationRequired, InvalidRequest, TooManyRequests


class AuthTestCase(unittest.TestCase):
    def setUp(self):
        self.supabase = FakeSupabase()
        self.form = SignUpRequest(
            email="julie@uqam.ca",
            password="Abcdefg1!",
            confirm_password="Abcdefg1!",
            first_name="Julie",
            last_name="Roy",
            study_cycle="Baccalauréat",
            school_year="2",
        )

    def test_sign_up_sends_profile_metadata(self):
        result = sign_up(self.supabase, self.form)

        self.assertEqual(result, {"user_id": "user-1", "email_confirmation_required": True})
        [credentials] = self.supabase.auth.sign_ups
        self.assertEqual(credentials["options"]["data"], {
            "first_name": "Julie",
            "last_name": "Roy",
            "study_cycle": "Baccalauréat",
            "school_year": "2",
        })

    def test_sign_up_without_email_confirmation(self):
        self.supabase.auth.confirm_email = False
        self.assertFalse(sign_up(self.supabase, self.form)["email_confirmation_required"])

    def test_sign_up_rejected(self):
        self.supabase.auth.error = AuthApiError("User already registered", 422, "user_already_exists")
        with self.assertRaises(InvalidRequest):
            sign_up(self.supabase, self.form)

    def test_sign_up_rate_limited(self):
        self.supabase.auth.error = AuthApiError("Email rate limit exceeded", 429, "over_email_send_rate_limit")
        with self.assertRaises(TooManyRequests):
            sign_up(self.supabase, self.form)

    def test_sign_in_returns_tokens(self):
        sign_up(self.supabase, self.form)
        self.supabase.add_profile("user-1", "Julie", "Roy")

        session = sign_in(self.supabase, "julie@uqam.ca", "Abcdefg1!")
        self.assertEqual(session["user_id"], "user-1")
        self.assertEqual(session["access_token"], "access-user-1")
        self.assertEqual(session["refresh_token"], "refresh-user-1")
        self.assertEqual(session["token_type"], "bearer")

    def test_sign_in_with_wrong_password(self):
        sign_up(self.supabase, self.form)
        with self.assertRaises(AuthenticationRequired) as ctx:
            sign_in(self.supabase, "julie@uqam.ca", "wrong")
        self.assertEqual(str(ctx.exception), "Invalid email or password")

    def test_sign_in_without_profile_still_succeeds(self):
        sign_up(self.supabase, self.form)

        with self.assertLogs("marketplace.services.auth", level="WARNING"):
            session = sign_in(self.supabase, "julie@uqam.ca", "Abcdefg1!")
        self.assertEqual(session["user_id"], "user-1")

    def test_sign_out_ends_the_session(self):
        sign_out(self.supabase, "access-user-1", "refresh-user-1")
        self.assertEqual(self.supabase.auth.signed_out, [("access-user-1", "refresh-user-1")])

    def test_sign_out_with_expired_session(self):
        self.supabase.auth.error = AuthApiError("Invalid Refresh Token", 400, "refresh_token_not_found")
        with self.assertRaises(AuthenticationRequired):
            sign_out(self.supabase, "access", "stale")


if __name__ == "__main__":
    unittest.main()
