import unittest

from infrastructure.security.bcrypt_hasher import BCRYPT_MAX_PASSWORD_BYTES, BcryptPasswordHasher


class BcryptPasswordHasherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.hasher = BcryptPasswordHasher(rounds=4)

    def test_hash_then_verify(self):
        for password in ("Secr3t!", "pässwörd", " spaced out ", "x" * BCRYPT_MAX_PASSWORD_BYTES):
            password_hash = self.hasher.hash(password)
            self.assertTrue(self.hasher.verify(password, password_hash))
            self.assertFalse(self.hasher.verify(password + "?", password_hash))

    def test_each_hash_uses_a_fresh_salt(self):
        first = self.hasher.hash("Secr3t!")
        second = self.hasher.hash("Secr3t!")
        self.assertNotEqual(first, second)
        self.assertTrue(self.hasher.verify("Secr3t!", second))

    def test_hash_embeds_cost(self):
        self.assertTrue(self.hasher.hash("Secr3t!").startswith("$2b$04$"))

    def test_overlong_password_cannot_be_hashed(self):
        with self.assertRaises(ValueError):
            self.hasher.hash("x" * (BCRYPT_MAX_PASSWORD_BYTES + 1))

    def test_overlong_password_never_verifies(self):
        password_hash = self.hasher.hash("x" * BCRYPT_MAX_PASSWORD_BYTES)
        self.assertFalse(self.hasher.verify("x" * (BCRYPT_MAX_PASSWORD_BYTES + 1), password_hash))

    def test_malformed_hash_is_a_mismatch(self):
        self.assertFalse(self.hasher.verify("Secr3t!", "not-a-bcrypt-hash"))

    def test_verify_dummy_accepts_any_password(self):
        self.hasher.verify_dummy("")
        self.hasher.verify_dummy("y" * 200)

    def test_rounds_are_bounded(self):
        with self.assertRaises(ValueError):
            BcryptPasswordHasher(rounds=3)
        with self.assertRaises(ValueError):
            BcryptPasswordHasher(rounds=32)


if __name__ == "__main__":
    unittest.main()
