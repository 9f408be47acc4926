import unittest

from zoh.errors import (
    ConfigError,
    DecryptionFailed,
    ExitCode,
    LockTimeout,
    NetworkError,
    NotAuthenticated,
    NotFound,
    RefreshFailed,
    RequestTimeout,
    SecretStoreError,
    TokenError,
    TokenRevoked,
    ZohError,
)


class ExitCodeTest(unittest.TestCase):
    def test_mapping(self):
        cases = [
            (ConfigError("x"), ExitCode.CONFIG),
            (NotAuthenticated("x"), ExitCode.AUTH),
            (TokenRevoked("x"), ExitCode.AUTH),
            (RefreshFailed("x", status_code=500), ExitCode.API_ERROR),
            (RequestTimeout("x"), ExitCode.TIMEOUT),
            (NetworkError("x"), ExitCode.NETWORK),
            (LockTimeout("x"), ExitCode.GENERAL),
            (DecryptionFailed("x"), ExitCode.GENERAL),
        ]
        for err, code in cases:
            self.assertEqual(err.exit_code, code, type(err).__name__)
            self.assertIsInstance(err, ZohError)

    def test_hierarchy(self):
        self.assertIsInstance(NotFound("k"), SecretStoreError)
        self.assertIsInstance(LockTimeout("x"), TokenError)

    def test_hints(self):
        self.assertEqual(NotAuthenticated("x").hint, "Run: zoh auth login")
        self.assertEqual(ConfigError("x", hint="custom").hint, "custom")
        self.assertIsNone(ConfigError("x").hint)

    def test_not_found_message(self):
        err = NotFound("refresh_token_us")
        self.assertEqual(err.message, "Key not found: refresh_token_us")
        self.assertEqual(str(err), "Key not found: refresh_token_us")


if __name__ == "__main__":
    unittest.main()
